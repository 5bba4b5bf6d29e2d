from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import uvicorn
import logging

from envcrypt.cache import ParsedKeyCache
from envcrypt.config import Settings
from envcrypt.crypto import router as crypto_router
from envcrypt.registry import EnvironmentRegistry, load_registry, validate_registry
from envcrypt.service import EncryptionService

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def create_app(registry: Optional[EnvironmentRegistry] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API.

    With an injected ``registry`` the app is ready immediately; otherwise the
    registry is loaded from ``settings.config_path`` on startup and any
    configuration error aborts the server.
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="envcrypt API",
        description="Encrypts API keys with per-environment RSA public keys.",
        version="1.0.0"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(crypto_router)

    cache = ParsedKeyCache() if settings.cache_keys else None

    def install(reg: EnvironmentRegistry):
        if settings.validate_keys:
            validate_registry(reg)
        app.state.registry = reg
        app.state.encryption_service = EncryptionService(reg, cache)

    if registry is not None:
        install(registry)
    else:
        @app.on_event("startup")
        async def startup_event():
            # ConfigError propagates and stops the server
            install(load_registry(settings.config_path))

    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError):
        # error details may echo the submitted apiKey, log only their types
        kinds = sorted({e.get("type", "?") for e in exc.errors()})
        logger.warning(f"[HTTP] Invalid request body for {request.url.path}: {', '.join(kinds)}")
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.get("/hello", response_class=PlainTextResponse)
    def hello():
        return "Hello, World!"

    @app.get("/health")
    def read_health(request: Request):
        return {"status": "ok", "environments": len(request.app.state.registry)}

    return app


def run():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings=settings)
    logger.info(f"[SERVER] Listening on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
