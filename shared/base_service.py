"""
Base service class for Storefront Catalog services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Dict, Optional
import time
import os

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import CatalogException, ValidationError

MAX_LOGGED_QUERY_LENGTH = 100


def truncate_query(query: str) -> str:
    """Truncate long query strings to keep log lines bounded."""
    if len(query) > MAX_LOGGED_QUERY_LENGTH:
        return query[:MAX_LOGGED_QUERY_LENGTH] + "..."
    return query


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)
        self.logger = get_logger(f"{service_name}.service")
        self.timing_logger = get_logger(f"{service_name}.request_timing")
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Storefront - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=list(self.config.cors_allowed_origins),
            allow_credentials="*" not in self.config.cors_allowed_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["ETag", "X-Request-ID"],
        )

        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            start_time = time.perf_counter()
            status_code = 500
            try:
                response = await call_next(request)
                status_code = response.status_code
                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                duration = time.perf_counter() - start_time
                self._record_request_timing(request, status_code, duration)
                clear_context()

    def _is_api_path(self, path: str) -> bool:
        """True for the API prefix itself or any path segment beneath it."""
        prefix = self.config.api_prefix.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")

    def _record_request_timing(self, request: Request, status_code: int, duration: float) -> None:
        """Record metrics for every request and log API requests by latency."""
        path = request.url.path
        self.metrics.record_http_request(
            method=request.method,
            endpoint=path,
            status_code=status_code,
            duration=duration
        )

        if not self._is_api_path(path):
            return

        query = request.url.query
        full_path = f"{path}?{truncate_query(query)}" if query else path
        duration_ms = round(duration * 1000, 2)
        threshold_ms = self.config.slow_request_threshold_ms

        if duration_ms > threshold_ms:
            self.metrics.increment_counter("slow_requests_total", method=request.method, endpoint=path)
            self.timing_logger.warning(
                "[PERF-SLOW] request exceeded threshold",
                method=request.method,
                path=full_path,
                duration_ms=duration_ms,
                status_code=status_code,
                threshold_ms=threshold_ms,
            )
        else:
            self.timing_logger.debug(
                "[PERF] request completed",
                method=request.method,
                path=full_path,
                duration_ms=duration_ms,
                status_code=status_code,
            )

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            try:
                dependencies = await self._check_dependencies()
                status = "ok" if all(value == "ok" for value in dependencies.values()) else "degraded"
                self.metrics.record_health_check(status)

                return {
                    "service": self.service_name,
                    "status": status,
                    "uptime_seconds": self._get_uptime(),
                    "dependencies": dependencies,
                    "version": "1.0.0",
                    "commit": os.getenv("GIT_COMMIT", "unknown")
                }
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={
                        "service": self.service_name,
                        "status": "error",
                        "error": str(e)
                    }
                )

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(
                content=self.metrics.export(),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(CatalogException)
        async def catalog_exception_handler(request: Request, exc: CatalogException):
            """Handle CatalogException."""
            return self._catalog_error_response(request, exc)

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            """Render malformed parameters as VALIDATION_ERROR."""
            errors = [
                {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
                for error in exc.errors()
            ]
            return self._catalog_error_response(
                request, ValidationError("Invalid request parameters", {"errors": errors})
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            return JSONResponse(
                status_code=500,
                content={
                    "code": "INTERNAL_ERROR",
                    "message": "Internal server error",
                    "details": {}
                }
            )

    def _catalog_error_response(self, request: Request, exc: CatalogException) -> JSONResponse:
        log = self.logger.error if exc.status_code >= 500 else self.logger.info
        log(
            "Catalog error",
            code=exc.code,
            message=exc.message,
            details=exc.details,
            path=request.url.path,
        )
        self.metrics.record_error(exc.code)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response().model_dump()
        )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
