from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .routers import chat, hooks, processing
from .. import __version__
from ..config.settings import MediaChatConfig
from ..exceptions import (
    ChatDisabledException,
    InvalidTransitionException,
    MediaChatException,
    ResourceNotFoundException,
    ValidationException,
)
from ..providers.factory import provider_factory
from ..service import MediaChatService
from ..service_context import ServiceContext
from ..utils.logging_config import log_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service from the environment unless one was injected."""
    owned_context = None
    if getattr(app.state, "service", None) is None:
        config = MediaChatConfig()
        log_manager.configure(config.logging)
        owned_context = await ServiceContext.create(config)
        app.state.service = MediaChatService(owned_context)
    try:
        yield
    finally:
        if owned_context is not None:
            await owned_context.close()
            app.state.service = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(service: Optional[MediaChatService] = None) -> FastAPI:
    app = FastAPI(
        title="mediachat API",
        description="Question answering over media captions and frames",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True
    )

    app.include_router(chat.router)
    app.include_router(processing.router)
    app.include_router(hooks.router)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error(400, "Missing required fields")

    @app.exception_handler(ValidationException)
    async def validation_handler(request: Request, exc: ValidationException):
        return _error(400, str(exc))

    @app.exception_handler(ChatDisabledException)
    async def chat_disabled_handler(request: Request, exc: ChatDisabledException):
        return _error(403, "Chat is disabled")

    @app.exception_handler(ResourceNotFoundException)
    async def not_found_handler(request: Request, exc: ResourceNotFoundException):
        return _error(404, str(exc))

    @app.exception_handler(InvalidTransitionException)
    async def transition_handler(request: Request, exc: InvalidTransitionException):
        return _error(409, str(exc))

    @app.exception_handler(MediaChatException)
    async def mediachat_handler(request: Request, exc: MediaChatException):
        logger.error(f"Unhandled mediachat error on {request.url.path}: {exc}")
        return _error(500, "Internal server error")

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "mediachat"}

    @app.get("/providers", tags=["providers"])
    async def get_supported_providers():
        """Get information about supported providers."""
        return {
            "supported_providers": provider_factory.get_supported_providers(),
            "message": "These are the currently supported providers for each service type"
        }

    return app


def main():
    config = MediaChatConfig()
    log_manager.configure(config.logging)
    logger.info(f"Starting {config.app_name} {config.app_version} on {config.host}:{config.port}")
    uvicorn.run(create_app(), host=config.host, port=config.port, log_level="debug" if config.debug else "info")


if __name__ == "__main__":
    main()
