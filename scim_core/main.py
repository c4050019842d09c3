"""Основное FastAPI приложение SCIM Core"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException
import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Dict, Optional

from . import __version__
from .config import settings
from .definitions import GROUP_RESOURCE_TYPE, USER_RESOURCE_TYPE, build_default_registry
from .routers import (
    users_router, groups_router, health_router, schemas_router,
    service_provider_config_router, resource_types_router
)
from .services.auth import AuthProvider, StaticTokenAuthProvider
from .services.mapper import GroupMapper, UserMapper
from .services.operations import ResourceService
from .services.registry import SchemaRegistry
from .services.storage import InMemoryStorage
from .utils.exceptions import SCIMError, ValidationFailed
from .utils.responses import error_response


# Настройка логирования
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


def default_services(registry: SchemaRegistry) -> Dict[str, ResourceService]:
    """Сервисы User и Group с хранилищем в памяти"""
    services = {}
    for resource_type, mapper in ((USER_RESOURCE_TYPE, UserMapper()), (GROUP_RESOURCE_TYPE, GroupMapper())):
        storage = InMemoryStorage(registry, resource_type, mapper)
        services[resource_type.name] = ResourceService(registry, resource_type, mapper, storage)
    return services


def create_app(
    registry: Optional[SchemaRegistry] = None,
    services: Optional[Dict[str, ResourceService]] = None,
    auth_provider: Optional[AuthProvider] = None
) -> FastAPI:
    """Собирает приложение; реестр, сервисы и провайдер можно подменить"""
    registry = registry or build_default_registry()
    services = services or default_services(registry)
    if auth_provider is None:
        auth_provider = StaticTokenAuthProvider.from_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Управление жизненным циклом приложения"""
        logger.info("Starting SCIM Core service...")
        logger.info(f"Base URL: {settings.base_url}{settings.api_prefix}")
        logger.info(f"Resource types: {', '.join(services)}")
        if auth_provider is None:
            logger.warning("No authentication provider configured, API is open")

        yield

        logger.info("Shutting down SCIM Core service...")

    app = FastAPI(
        title="SCIM Core",
        description="SCIM 2.0 сервис: схемы, фильтры, валидация и PATCH",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.registry = registry
    app.state.services = services
    app.state.auth_provider = auth_provider

    # Настройка CORS
    cors_origins = settings.cors_origins.split(",") if settings.cors_origins != "*" else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Обработчик исключений SCIM
    @app.exception_handler(SCIMError)
    async def scim_exception_handler(request: Request, exc: SCIMError):
        """Ошибки SCIM в формате RFC 7644 §3.12"""
        if exc.status_code >= 500:
            logger.error(f"SCIM Error: {exc.message}", exc_info=exc)
        else:
            logger.info(f"SCIM Error {exc.status_code}: {exc.message}")
        if isinstance(exc, ValidationFailed):
            for issue in exc.errors:
                logger.debug(f"Validation issue: {issue}")

        headers = None
        if exc.status_code == 401:
            headers = {"WWW-Authenticate": 'Bearer realm="SCIM"'}
        return error_response(exc.status_code, exc.message, exc.scim_type, headers)

    # Обработчик общих HTTP исключений
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Обработчик HTTP исключений"""
        logger.error(f"HTTP Error: {exc.detail}")
        return error_response(exc.status_code, str(exc.detail))

    # Некорректные параметры запроса
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Ошибки разбора параметров запроса"""
        logger.info(f"Invalid request: {exc.errors()}")
        return error_response(400, "Invalid request parameters", "invalidValue")

    # Обработчик неожиданных исключений
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Обработчик неожиданных исключений"""
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        return error_response(500, "Internal server error")

    # Middleware для логирования запросов
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Middleware для логирования HTTP запросов"""
        start_time = time.time()

        # Логируем входящий запрос
        logger.info(f"Request: {request.method} {request.url}")

        response = await call_next(request)

        # Логируем время выполнения
        process_time = time.time() - start_time
        logger.info(f"Response: {response.status_code} - {process_time:.3f}s")

        return response

    # Подключение роутеров
    app.include_router(health_router)
    for router in (
        users_router, groups_router, schemas_router,
        resource_types_router, service_provider_config_router
    ):
        app.include_router(router, prefix=settings.api_prefix)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scim_core.main:app",
        host="0.0.0.0",
        port=4000,
        reload=True,
        log_level=settings.log_level.lower()
    )
