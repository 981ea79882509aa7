"""
Main Application Coordinator for the StreamFlow proxy.

Loads configuration, sets up logging, composes the video module and runs the
API server.
"""

import logging
import sys
from typing import Optional

from .core.config import Config
from .core.logging_config import setup_logging
from .video.integration import create_video_module
from .api.server import APIServer


class StreamFlowApp:
    """Main application coordinator"""

    def __init__(self, config_file: Optional[str] = None, log_level: Optional[str] = None):
        # Load configuration first (basic logging will be used initially)
        self.config = Config(config_file)
        if log_level:
            self.config.system.log_level = log_level

        self.logger_setup = setup_logging(log_level=self.config.system.log_level, log_file=self.config.system.log_file)
        self.logger = logging.getLogger(__name__)

        self.video_module = create_video_module(self.config)
        self.api_server = APIServer(self.config, self.video_module)

        self.logger.info("StreamFlow proxy initialized")

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Run the server (blocking call)"""
        try:
            self.api_server.run(host=host, port=port)
        except KeyboardInterrupt:
            self.logger.info("Keyboard interrupt received")


def main():
    """Main entry point for the application"""
    import argparse

    parser = argparse.ArgumentParser(description="StreamFlow streaming media proxy")
    parser.add_argument("--config", type=str, help="Path to configuration file", default=None)
    parser.add_argument("--log-level", type=str, choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Override log level", default=None)
    parser.add_argument("--host", type=str, help="Override bind address", default=None)
    parser.add_argument("--port", type=int, help="Override port", default=None)

    args = parser.parse_args()

    app = StreamFlowApp(args.config, log_level=args.log_level)

    try:
        app.run(host=args.host, port=args.port)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
