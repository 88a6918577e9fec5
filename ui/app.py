"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import load_config
from core.errors import BaseFlakeError, ErrorKind
from core.health import HealthChecker, check_event_loop, create_generator_check, create_logger_check
from flakegen import Generator, Settings
from internal.logging import AsyncFileLogger, StructuredLogger, get_logger, parse_level
from shortener import UrlMappingRepository, UrlShortenerService
from ui.routes import api, health, ids, urls

# kind -> (http status, public error code)
ERROR_STATUS = {
    ErrorKind.INVALID_URL: (400, "INVALID_URL"),
    ErrorKind.URL_NOT_FOUND: (404, "URL_NOT_FOUND"),
    ErrorKind.MAPPING_CONFLICT: (409, "MAPPING_CONFLICT"),
    ErrorKind.OVER_TIME_LIMIT: (503, "OVER_TIME_LIMIT"),
}


def error_body(status, code, message, error_id=None):
    return {"status": status, "code": code, "message": message, "error_id": error_id}


def create_app(config=None, resolver=None, clock=None):
    """Create and configure the FastAPI application.

    ``resolver`` and ``clock`` are handed to the settings and generator so
    tests can pin the machine id and time.
    """
    config = config or load_config()

    StructuredLogger.configure(min_level=parse_level(config.logging.level))
    logger_instance = get_logger()

    # Fails fast on a bad start time or machine id
    settings = Settings.of(config.generator.start_datetime, config.generator.machine_id, resolver=resolver)
    generator = Generator.of(settings, clock=clock)
    repository = UrlMappingRepository()
    file_logger = AsyncFileLogger(file_path=config.logging.file)
    service = UrlShortenerService(repository, generator, domain=config.server.domain, audit=file_logger)

    health_checker = HealthChecker()
    health_checker.register("event_loop", check_event_loop, critical=True)
    health_checker.register("generator", create_generator_check(generator), critical=True)
    health_checker.register("audit_logger", create_logger_check(file_logger), critical=False)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger_instance.info("Application starting", version="1.0.0", **settings.to_dict())
        await file_logger.start()
        yield
        logger_instance.info("Application shutting down")
        await file_logger.stop()
        logger_instance.info("Application shutdown complete")

    app = FastAPI(
        title="flakegen",
        version="1.0.0",
        description="Sonyflake-style id generation and URL shortening",
        lifespan=lifespan,
    )
    app.state.generator = generator
    app.state.service = service

    @app.exception_handler(BaseFlakeError)
    async def flake_error_handler(request: Request, exc: BaseFlakeError):
        status, code = ERROR_STATUS.get(exc.kind, (500, "INTERNAL_ERROR"))
        if status >= 500:
            logger_instance.error("Request failed", error=exc, path=request.url.path, error_id=exc.error_id)
        return JSONResponse(status_code=status, content=error_body(status, code, exc.message, exc.error_id))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger_instance.error("Unhandled error", error=exc, path=request.url.path)
        return JSONResponse(status_code=500,
                            content=error_body(500, "INTERNAL_ERROR", f"An unexpected error occurred: {exc}"))

    urls.init(service)
    ids.init(generator)
    api.init(generator, repository, file_logger)
    health.init(generator, health_checker)

    app.include_router(urls.router)
    app.include_router(ids.router)
    app.include_router(api.router)
    app.include_router(health.router)

    return app
