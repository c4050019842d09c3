"""SCIM Core: схемы, фильтры, валидация и PATCH для SCIM 2.0"""

__version__ = "1.0.0"
