"""Провайдеры аутентификации SCIM клиентов"""

import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..config import settings
from ..models.auth import Principal, Scope
from ..utils.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class AuthProvider(ABC):
    """Проверяет учётные данные и возвращает Principal или бросает AuthenticationError"""

    @abstractmethod
    def validate_bearer(self, token: str) -> Principal:
        pass

    @abstractmethod
    def validate_basic(self, username: str, password: str) -> Principal:
        pass


class StaticTokenAuthProvider(AuthProvider):
    """Токены и пароли из конфигурации"""

    def __init__(
        self,
        tokens: Optional[Dict[str, List[str]]] = None,
        credentials: Optional[Dict[str, str]] = None
    ):
        self.tokens = dict(tokens or {})
        self.credentials = dict(credentials or {})

    @classmethod
    def from_settings(cls) -> Optional["StaticTokenAuthProvider"]:
        """Провайдер из настроек; None если ничего не настроено"""
        if not settings.bearer_tokens and not settings.basic_credentials:
            return None
        return cls(tokens=settings.bearer_tokens, credentials=settings.basic_credentials)

    def validate_bearer(self, token: str) -> Principal:
        for known, scopes in self.tokens.items():
            if hmac.compare_digest(known.encode("utf-8"), token.encode("utf-8")):
                # Идентификатор клиента без раскрытия самого токена
                client_id = hashlib.sha256(known.encode("utf-8")).hexdigest()[:16]
                return Principal(id=f"token:{client_id}", scopes=list(scopes), metadata={"auth_method": "bearer"})
        logger.warning("Rejected unknown bearer token")
        raise AuthenticationError("token_not_found")

    def validate_basic(self, username: str, password: str) -> Principal:
        expected = self.credentials.get(username)
        if expected is None or not hmac.compare_digest(expected.encode("utf-8"), password.encode("utf-8")):
            logger.warning(f"Rejected basic credentials for {username!r}")
            raise AuthenticationError("invalid_credentials")
        return Principal(
            id=f"basic:{username}",
            username=username,
            scopes=[Scope.READ, Scope.WRITE],
            metadata={"auth_method": "basic"}
        )
