"""
Base service class for the storefront services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import time

from shared.config import StorefrontConfig, get_config
from shared.errors import HTTPError, StorefrontException, ServiceError, ValidationError, build_error_response
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, config: Optional[StorefrontConfig] = None):
        self.service_name = service_name
        self.config = config if config is not None else get_config()
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.on_startup()
            try:
                yield
            finally:
                await self.on_shutdown()

        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"{self.config.business_name} - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
            lifespan=lifespan,
        )

    async def on_startup(self) -> None:
        """Startup hook. Override in subclasses."""

    async def on_shutdown(self) -> None:
        """Shutdown hook. Override in subclasses."""

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
            max_age=86400,
        )

        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            start_time = time.time()

            try:
                response = await call_next(request)
                duration = time.time() - start_time

                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=request.url.path,
                    status_code=response.status_code,
                    duration=duration
                )

                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    endpoint=request.query_params.get("endpoint"),
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )

                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Set up common routes and the error envelope handlers."""

        @self.app.get("/metrics")
        async def metrics_endpoint():
            return Response(content=self.metrics.render(), media_type=CONTENT_TYPE_LATEST)

        @self.app.exception_handler(StorefrontException)
        async def storefront_exception_handler(request: Request, exc: StorefrontException):
            self.logger.error("Storefront error", code=exc.code, message=exc.message)
            return self._envelope(exc)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            response = self._envelope(HTTPError(exc.status_code, str(exc.detail)))
            for name, value in (exc.headers or {}).items():
                response.headers[name] = value
            return response

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            # FastAPI parameter errors use the same envelope as gateway validation
            errors = exc.errors()
            field = ".".join(str(part) for part in errors[0]["loc"]) if errors else None
            return self._envelope(
                ValidationError("Invalid input", field=field),
                extra_details=[error.get("msg") for error in errors],
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error(type(exc).__name__)
            return self._envelope(ServiceError(str(exc)))

    def _envelope(self, exc: StorefrontException, extra_details=None) -> JSONResponse:
        body = build_error_response(exc, debug=self.config.debug, extra_details=extra_details)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))

    def get_uptime(self) -> float:
        return time.time() - self._start_time

    def run(self):
        import uvicorn
        uvicorn.run(self.app, host=self.config.host, port=self.config.port,
                    log_level=self.config.log_level.lower())
