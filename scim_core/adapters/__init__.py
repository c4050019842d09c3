"""Адаптеры запросов для внешних хранилищ"""

from .sqlalchemy_filter import SQLAlchemyFilterAdapter

__all__ = ["SQLAlchemyFilterAdapter"]
