"""Общие зависимости роутеров: сервисы, аутентификация, тело запроса"""

import base64
import binascii
import logging
from typing import Any, Callable, Optional

from fastapi import Request

from ..models.auth import Principal
from ..services.operations import ResourceService
from ..utils.exceptions import AuthenticationError, InsufficientScopeError, SCIMError

logger = logging.getLogger(__name__)


def get_service(request: Request, resource_type: str) -> ResourceService:
    return request.app.state.services[resource_type]


async def read_json(request: Request) -> Any:
    """Тело запроса как JSON; на некорректный JSON ошибка invalidSyntax"""
    try:
        return await request.json()
    except ValueError:
        raise SCIMError("Request body is not valid JSON", status_code=400, scim_type="invalidSyntax")


def _authenticate(request: Request) -> Principal:
    provider = request.app.state.auth_provider
    header = request.headers.get("authorization")
    if not header:
        raise AuthenticationError("missing_credentials")

    scheme, _, credentials = header.partition(" ")
    credentials = credentials.strip()
    if scheme.lower() == "bearer" and credentials:
        return provider.validate_bearer(credentials)
    if scheme.lower() == "basic" and credentials:
        try:
            decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise AuthenticationError("invalid_basic_format")
        username, separator, password = decoded.partition(":")
        if not separator:
            raise AuthenticationError("invalid_basic_format")
        return provider.validate_basic(username, password)
    raise AuthenticationError("unsupported_scheme")


def require_scopes(*scopes: str) -> Callable:
    """Зависимость: аутентификация и проверка scope (если провайдер настроен)"""

    async def dependency(request: Request) -> Optional[Principal]:
        if request.app.state.auth_provider is None:
            return None
        principal = _authenticate(request)
        missing = [scope for scope in scopes if not principal.has_scope(scope)]
        if missing:
            logger.warning(f"Principal {principal.id} lacks scope(s): {', '.join(missing)}")
            raise InsufficientScopeError(missing)
        request.state.principal = principal
        return principal

    return dependency
