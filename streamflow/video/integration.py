"""
Video Module Integration.

Composition root for the streaming proxy: creates the infrastructure
implementations, wires them into the application services and exposes the
API routes.
"""

import logging
from typing import Optional

import httpx

from ..core.config import Config

# Domain
from .domain.classifier import PlatformSpec, SourceClassifier
from .domain.interfaces import ExtractionService, MetadataCache, UserAgentProvider

# Infrastructure implementations
from .infrastructure.caching import InMemoryMetadataCache, NoOpMetadataCache
from .infrastructure.extractors import NullExtractionService, YtDlpExtractionService
from .infrastructure.user_agents import RotatingUserAgentProvider

# Application services
from .application.proxy_service import RangeAwareProxy
from .application.resolution_service import ResolutionService
from .application.orchestrator import FallbackOrchestrator

# Presentation layer
from .presentation.controllers import StreamingController, VideoController
from .presentation.routes import create_admin_cache_routes, create_video_routes


class VideoModule:
    """
    Main video module that provides dependency injection and service composition.

    Any collaborator can be passed in explicitly (tests inject fakes);
    otherwise it is built from configuration.
    """

    def __init__(
        self,
        config: Config,
        http_client: Optional[httpx.AsyncClient] = None,
        extraction_service: Optional[ExtractionService] = None,
        metadata_cache: Optional[MetadataCache] = None,
        user_agents: Optional[UserAgentProvider] = None,
        classifier: Optional[SourceClassifier] = None,
    ):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self._owns_http_client = http_client is None
        self.http_client = http_client or self._create_http_client()
        self.extraction_service = extraction_service or self._create_extraction_service()
        self.metadata_cache = metadata_cache or self._create_metadata_cache()
        self.user_agents = user_agents or RotatingUserAgentProvider(config.proxy.user_agents)
        self.classifier = classifier or self._create_classifier()

        self._initialize_services()

        self.logger.info("Video module initialized successfully")

    def _initialize_services(self):
        """Initialize all video services with proper dependency injection"""

        # Application layer
        self.proxy = RangeAwareProxy(
            http_client=self.http_client,
            user_agents=self.user_agents,
            chunk_size=self.config.proxy.chunk_size_bytes
        )

        self.resolution_service = ResolutionService(
            extraction_service=self.extraction_service,
            metadata_cache=self.metadata_cache
        )

        self.orchestrator = FallbackOrchestrator(
            classifier=self.classifier,
            resolution_service=self.resolution_service,
            proxy=self.proxy
        )

        # Presentation layer
        self.video_controller = VideoController(self.orchestrator)
        self.streaming_controller = StreamingController(self.orchestrator)

    def _create_http_client(self) -> httpx.AsyncClient:
        """Shared upstream client; each response still belongs to one request"""
        proxy_config = self.config.proxy
        return httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=proxy_config.connect_timeout_seconds,
                read=proxy_config.read_timeout_seconds,
                write=10.0,
                pool=proxy_config.pool_timeout_seconds,
            ),
            limits=httpx.Limits(max_connections=proxy_config.max_connections),
            follow_redirects=True,
        )

    def _create_extraction_service(self) -> ExtractionService:
        """Create extraction backend"""
        extraction_config = self.config.extraction
        if extraction_config.backend == YtDlpExtractionService.name:
            return YtDlpExtractionService(
                format_selector=extraction_config.format_selector,
                socket_timeout_seconds=extraction_config.socket_timeout_seconds
            )

        if extraction_config.backend != NullExtractionService.name:
            self.logger.warning(f"Unknown extraction backend {extraction_config.backend!r}, extraction disabled")
        return NullExtractionService()

    def _create_metadata_cache(self) -> MetadataCache:
        """Create metadata cache implementation"""
        if self.config.cache.enabled:
            return InMemoryMetadataCache(
                ttl_seconds=self.config.cache.ttl_seconds,
                sweep_interval_seconds=self.config.cache.sweep_interval_seconds
            )
        return NoOpMetadataCache()

    def _create_classifier(self) -> SourceClassifier:
        extra = [
            PlatformSpec(platform=p.platform, domains=tuple(p.domains), embed_url_template=p.embed_url_template)
            for p in self.config.classifier.extra_platforms
        ]
        return SourceClassifier().with_platforms(extra)

    def get_api_routes(self):
        """Get FastAPI routes for streaming"""
        return create_video_routes(
            video_controller=self.video_controller,
            streaming_controller=self.streaming_controller
        )

    def get_admin_routes(self):
        """Get admin routes for the metadata cache"""
        return create_admin_cache_routes(self.metadata_cache)

    async def startup(self) -> None:
        """Start background work; needs a running event loop"""
        if isinstance(self.metadata_cache, InMemoryMetadataCache):
            self.metadata_cache.start()

    async def cleanup(self):
        """Clean up video module resources"""
        try:
            if isinstance(self.metadata_cache, InMemoryMetadataCache):
                await self.metadata_cache.stop()

            if self._owns_http_client:
                await self.http_client.aclose()

            self.logger.info("Video module cleanup completed")

        except Exception as e:
            self.logger.error(f"Error during video module cleanup: {e}")

    async def get_module_status(self) -> dict:
        """Get status information about the video module"""
        return {
            "extraction_backend": self.extraction_service.name,
            "metadata_cache": type(self.metadata_cache).__name__,
            "cache": await self.metadata_cache.stats(),
            "platforms": [spec.platform for spec in self.classifier.platforms],
            "user_agent_provider": type(self.user_agents).__name__,
        }


def create_video_module(config: Config, **overrides) -> VideoModule:
    """
    Factory function to create a configured video module.

    This is the main entry point for wiring the proxy into the API server.
    """
    return VideoModule(config=config, **overrides)
