"""
FastAPI Server for the StreamFlow proxy.

This module builds the FastAPI application: CORS, lifecycle of the video
module, error rendering and the health endpoint.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.config import Config
from ..core.logging_config import get_error_tracker
from ..video.domain.errors import InvalidRequest, RangeNotSatisfiable, SourceUnavailable, StreamFlowError, UpstreamUnreachable
from ..video.integration import VideoModule
from .models import HealthResponse


ENDPOINTS = [
    "/stream?url=YOUR_URL",
    "/stream/direct?url=DIRECT_VIDEO_URL",
    "/video/info?url=YOUR_URL",
    "/embed?url=PLATFORM_URL",
    "/health",
]

RENDERED_ERRORS = (InvalidRequest, SourceUnavailable, UpstreamUnreachable, RangeNotSatisfiable)


class APIServer:
    """FastAPI server for the StreamFlow proxy"""

    def __init__(self, config: Config, video_module: VideoModule):
        self.config = config
        self.video_module = video_module
        self.logger = logging.getLogger(__name__)
        self.error_tracker = get_error_tracker("api")

        self.server_start_time = datetime.now()

        # FastAPI app
        self.app = FastAPI(
            title="StreamFlow Proxy API",
            description="Streaming media proxy with HTTP range support for browser video players",
            version="1.0.0",
            lifespan=self._lifespan,
        )

        # Setup CORS - the player is served from another origin
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.system.cors_origins,
            allow_methods=["GET", "HEAD", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=["Content-Range", "Content-Length", "Accept-Ranges"],
        )

        self._setup_exception_handlers()
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.video_module.startup()
        self.logger.info("StreamFlow API started")
        try:
            yield
        finally:
            await self.video_module.cleanup()
            self.logger.info("StreamFlow API stopped")

    def _setup_exception_handlers(self):
        """Render domain errors as structured bodies"""

        async def streamflow_error_handler(request: Request, exc: StreamFlowError):
            self.logger.info(f"{request.url.path} failed: {exc.kind} ({exc.status_code}): {exc.message}")
            headers = {}
            if isinstance(exc, RangeNotSatisfiable) and exc.total_size is not None:
                headers["Content-Range"] = f"bytes */{exc.total_size}"
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

        # InternalStreamingFailure happens after headers are sent and is left to the server
        for error_class in RENDERED_ERRORS:
            self.app.add_exception_handler(error_class, streamflow_error_handler)

        @self.app.exception_handler(RequestValidationError)
        async def validation_error_handler(request: Request, exc: RequestValidationError):
            details = "; ".join(f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors())
            error = InvalidRequest(details or "Invalid request")
            return JSONResponse(status_code=error.status_code, content=error.to_dict())

        @self.app.exception_handler(Exception)
        async def unhandled_error_handler(request: Request, exc: Exception):
            self.error_tracker.log_error(exc, context=request.url.path)
            return JSONResponse(status_code=500, content={"error": "InternalError", "reason": None, "message": "Internal server error"})

    def _setup_routes(self):
        """Setup API routes"""

        @self.app.get("/health", response_model=HealthResponse)
        async def health_check():
            """Liveness and capabilities; no business logic"""
            capabilities = await self.video_module.get_module_status()
            capabilities["errors"] = self.error_tracker.get_error_stats()
            return HealthResponse(
                status="ok",
                message="StreamFlow proxy server is running",
                timestamp=datetime.now().isoformat(),
                uptime_seconds=(datetime.now() - self.server_start_time).total_seconds(),
                endpoints=ENDPOINTS,
                capabilities=capabilities,
            )

        self.app.include_router(self.video_module.get_api_routes())
        self.app.include_router(self.video_module.get_admin_routes())

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Run the uvicorn server (blocking call)"""
        host = host or self.config.system.api_host
        port = port or self.config.system.api_port
        self.logger.info(f"Starting API server on {host}:{port}")
        uvicorn.run(self.app, host=host, port=port, log_level=self.config.system.log_level.lower())

    def get_server_info(self) -> Dict[str, Any]:
        """Get server information"""
        return {
            "host": self.config.system.api_host,
            "port": self.config.system.api_port,
            "start_time": self.server_start_time.isoformat(),
            "uptime_seconds": (datetime.now() - self.server_start_time).total_seconds(),
        }


def create_app(config: Optional[Config] = None, **module_overrides) -> FastAPI:
    """Build the ASGI app, e.g. ``uvicorn 'streamflow.api.server:create_app' --factory``"""
    config = config or Config()
    video_module = VideoModule(config, **module_overrides)
    return APIServer(config, video_module).app
