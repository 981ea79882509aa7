"""
Configuration management for the StreamFlow proxy.

This module handles all configuration settings including upstream proxy
behaviour, metadata caching, extraction backend, extra embeddable platforms
and server parameters.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class ProxyConfig:
    """Upstream fetch configuration"""

    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 30.0  # Idle bound per read, not a bound on total transfer
    pool_timeout_seconds: float = 5.0
    chunk_size_bytes: int = 64 * 1024
    max_connections: int = 100
    user_agents: List[str] = field(default_factory=list)  # Empty means built-in browser list


@dataclass
class CacheConfig:
    """Metadata cache configuration"""

    enabled: bool = True
    ttl_seconds: int = 300
    sweep_interval_seconds: int = 60


@dataclass
class ExtractionConfig:
    """Extraction backend configuration"""

    backend: str = "yt-dlp"  # yt-dlp or none
    format_selector: str = "best[ext=mp4]/best[ext=webm]/best"
    socket_timeout_seconds: float = 15.0


@dataclass
class PlatformConfig:
    """An additional embeddable platform"""

    platform: str
    domains: List[str]
    embed_url_template: Optional[str] = None  # e.g. https://example.com/embed/{video_id}


@dataclass
class ClassifierConfig:
    """Source classifier configuration"""

    extra_platforms: List[PlatformConfig] = field(default_factory=list)

    def __post_init__(self):
        self.extra_platforms = [PlatformConfig(**p) if isinstance(p, dict) else p for p in self.extra_platforms]


@dataclass
class SystemConfig:
    """System-wide configuration"""

    log_level: str = "INFO"
    log_file: Optional[str] = None
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


class Config:
    """Main configuration manager"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file
        self.logger = logging.getLogger(__name__)

        # Default configurations
        self.proxy = ProxyConfig()
        self.cache = CacheConfig()
        self.extraction = ExtractionConfig()
        self.classifier = ClassifierConfig()
        self.system = SystemConfig()

        # Load configuration
        if self.config_file:
            self.load_config()

    def load_config(self) -> None:
        """Load configuration from file"""
        config_path = Path(self.config_file)

        if not config_path.exists():
            self.logger.info(f"Config file {config_path} not found, using defaults")
            return

        try:
            with open(config_path, "r") as f:
                config_data = json.load(f)

            if "proxy" in config_data:
                self.proxy = ProxyConfig(**config_data["proxy"])

            if "cache" in config_data:
                self.cache = CacheConfig(**config_data["cache"])

            if "extraction" in config_data:
                self.extraction = ExtractionConfig(**config_data["extraction"])

            if "classifier" in config_data:
                self.classifier = ClassifierConfig(**config_data["classifier"])

            if "system" in config_data:
                self.system = SystemConfig(**config_data["system"])

            self.logger.info(f"Configuration loaded from {config_path}")

        except (OSError, ValueError, TypeError) as e:
            # Unknown keys surface as TypeError from the dataclass constructors
            self.logger.error(f"Error loading config from {config_path}: {e}")

    def save_config(self, config_file: Optional[str] = None) -> None:
        """Save current configuration to file"""
        target = config_file or self.config_file or "config.json"

        try:
            with open(target, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
            self.logger.info(f"Configuration saved to {target}")
        except OSError as e:
            self.logger.error(f"Error saving config to {target}: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            "proxy": asdict(self.proxy),
            "cache": asdict(self.cache),
            "extraction": asdict(self.extraction),
            "classifier": asdict(self.classifier),
            "system": asdict(self.system),
        }
