"""Парсер SCIM фильтров и путей атрибутов согласно RFC 7644 §3.4.2.2"""

import json
import logging
import re
from functools import lru_cache
from typing import Optional, List, NamedTuple

from ..config import settings
from ..models.filters import (
    FilterNode, AttributePath, Comparison, Presence, And, Or, Not,
    FilterOperator
)
from ..utils.exceptions import InvalidFilterError, InvalidPathError

logger = logging.getLogger(__name__)


class Token(NamedTuple):
    """Токен фильтра с позицией (смещение от 0)"""
    type: str
    value: str
    offset: int


# URN-префикс: urn:...:User: перед именем атрибута
_URN = r'urn:[A-Za-z0-9][A-Za-z0-9\-]*(?::[A-Za-z0-9.\-]+)*:'
_NAME = r'[A-Za-z$][A-Za-z0-9_$\-]*'


class _TokenCursor:
    """Состояние разбора одной строки (парсер не хранит состояние между вызовами)"""

    def __init__(self, text: str, tokens: List[Token]):
        self.text = text
        self.tokens = tokens
        self.position = 0
        self.value_filter_depth = 0

    def current(self) -> Optional[Token]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def error(self, message: str, token: Optional[Token] = None) -> InvalidFilterError:
        """Ошибка с фрагментом, начинающимся с проблемного токена"""
        if token is None:
            token = self.current()
        offset = token.offset if token else len(self.text)
        fragment = self.text[offset:] if token else ""
        return InvalidFilterError(message, fragment=fragment, position=offset + 1)

    def consume(self, expected_type: Optional[str] = None) -> Token:
        token = self.current()
        if token is None:
            raise self.error(f"Unexpected end of filter, expected {expected_type or 'token'}")
        if expected_type and token.type != expected_type:
            raise self.error(f"Expected {expected_type}, got {token.type}", token)
        self.position += 1
        return token

    def at(self, token_type: str, value: Optional[str] = None) -> bool:
        token = self.current()
        if token is None or token.type != token_type:
            return False
        return value is None or token.value.lower() == value


class FilterParser:
    """Парсер SCIM фильтров согласно RFC 7644

    Приоритет (от низшего к высшему): or, and, not, сравнение.
    Результат разбора: неизменяемое AST; парсер потокобезопасен.
    """

    # Регулярные выражения для токенов (порядок важен)
    TOKEN_PATTERNS = [
        ('WHITESPACE', r'\s+'),
        ('OPERATOR', r'(?:eq|ne|co|sw|ew|gt|ge|lt|le|pr)(?![A-Za-z0-9_$.:\-\[])'),
        ('LOGICAL', r'(?:and|or|not)(?![A-Za-z0-9_$.:\-\[])'),
        ('BOOLEAN', r'(?:true|false)(?![A-Za-z0-9_$.:\-\[])'),
        ('NULL', r'null(?![A-Za-z0-9_$.:\-\[])'),
        ('ATTRIBUTE', rf'(?:{_URN})?{_NAME}(?:\.{_NAME})?'),
        ('STRING', r'"(?:[^"\\]|\\.)*"'),
        ('NUMBER', r'-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?'),
        ('LPAREN', r'\('),
        ('RPAREN', r'\)'),
        ('LBRACKET', r'\['),
        ('RBRACKET', r'\]'),
        ('DOT', r'\.'),
    ]

    _COMPILED = [(name, re.compile(pattern, re.IGNORECASE)) for name, pattern in TOKEN_PATTERNS]

    def __init__(self, max_length: Optional[int] = None):
        self.max_length = max_length if max_length is not None else settings.max_filter_length

    def parse(self, filter_string: str) -> FilterNode:
        """Парсит строку фильтра и возвращает AST"""
        if not filter_string or not filter_string.strip():
            raise InvalidFilterError("Empty filter string")
        if len(filter_string) > self.max_length:
            raise InvalidFilterError("Filter is too long")

        cursor = _TokenCursor(filter_string, self._tokenize(filter_string))
        expression = self._parse_logical_or(cursor)
        if cursor.current() is not None:
            raise cursor.error("Unexpected token")
        logger.debug(f"Parsed filter {filter_string!r} -> {expression}")
        return expression

    def parse_path(self, path_string: str) -> AttributePath:
        """Парсит путь атрибута PATCH операции (attrPath с необязательным value filter)"""
        if not path_string or not path_string.strip():
            raise InvalidPathError("Empty path")
        try:
            cursor = _TokenCursor(path_string, self._tokenize(path_string))
            path = self._parse_attribute_path(cursor)
            if cursor.current() is not None:
                raise cursor.error("Unexpected token")
        except InvalidFilterError as e:
            raise InvalidPathError(f"Invalid path {path_string!r}: {e.message}")
        return path

    def _tokenize(self, filter_string: str) -> List[Token]:
        """Разбивает строку на токены"""
        tokens = []
        position = 0

        while position < len(filter_string):
            for token_type, regex in self._COMPILED:
                match = regex.match(filter_string, position)
                if match:
                    if token_type != 'WHITESPACE':  # Игнорируем пробелы
                        tokens.append(Token(token_type, match.group(0), position))
                    position = match.end()
                    break
            else:
                raise InvalidFilterError(
                    "Invalid character",
                    fragment=filter_string[position:],
                    position=position + 1
                )

        return tokens

    def _parse_logical_or(self, cursor: _TokenCursor) -> FilterNode:
        """Парсит OR выражения (наименьший приоритет)"""
        left = self._parse_logical_and(cursor)

        while cursor.at('LOGICAL', 'or'):
            cursor.consume('LOGICAL')
            right = self._parse_logical_and(cursor)
            left = Or(left=left, right=right)

        return left

    def _parse_logical_and(self, cursor: _TokenCursor) -> FilterNode:
        """Парсит AND выражения"""
        left = self._parse_logical_not(cursor)

        while cursor.at('LOGICAL', 'and'):
            cursor.consume('LOGICAL')
            right = self._parse_logical_not(cursor)
            left = And(left=left, right=right)

        return left

    def _parse_logical_not(self, cursor: _TokenCursor) -> FilterNode:
        """Парсит NOT выражения: not ( filter )"""
        if cursor.at('LOGICAL', 'not'):
            cursor.consume('LOGICAL')
            if not cursor.at('LPAREN'):
                raise cursor.error("Expected '(' after 'not'")
            cursor.consume('LPAREN')
            expression = self._parse_logical_or(cursor)
            cursor.consume('RPAREN')
            return Not(inner=expression)

        return self._parse_primary(cursor)

    def _parse_primary(self, cursor: _TokenCursor) -> FilterNode:
        """Парсит первичные выражения"""
        token = cursor.current()

        if token is None:
            raise cursor.error("Unexpected end of filter")

        # Группированное выражение
        if token.type == 'LPAREN':
            cursor.consume('LPAREN')
            expression = self._parse_logical_or(cursor)
            cursor.consume('RPAREN')
            return expression

        # Атрибут
        if token.type == 'ATTRIBUTE':
            return self._parse_attribute_expression(cursor)

        raise cursor.error("Unexpected token", token)

    def _parse_attribute_expression(self, cursor: _TokenCursor) -> FilterNode:
        """Парсит выражения с атрибутами"""
        path = self._parse_attribute_path(cursor)

        # valuePath без оператора: emails[type eq "work"] означает "есть подходящий элемент"
        if path.value_filter is not None and not cursor.at('OPERATOR'):
            return Presence(path=path)

        operator_token = cursor.consume('OPERATOR')
        operator = operator_token.value.lower()

        # Для оператора pr значение не нужно
        if operator == 'pr':
            return Presence(path=path)

        value = self._parse_value(cursor)
        return Comparison(op=FilterOperator(operator), path=path, value=value)

    def _parse_attribute_path(self, cursor: _TokenCursor) -> AttributePath:
        """Парсит путь: attr, attr.sub, urn:...:attr, attr[filter], attr[filter].sub"""
        attribute_token = cursor.consume('ATTRIBUTE')
        schema_urn, attribute, sub_attribute = self._split_attribute(attribute_token.value)

        # Сложный атрибут с фильтром по элементам: emails[type eq "work"].value
        if cursor.at('LBRACKET'):
            bracket = cursor.current()
            if sub_attribute is not None:
                raise cursor.error("Value filter must follow a top-level attribute", bracket)
            if cursor.value_filter_depth > 0:
                raise cursor.error("Nested value filters are not allowed", bracket)

            cursor.consume('LBRACKET')
            cursor.value_filter_depth += 1
            value_filter = self._parse_logical_or(cursor)
            cursor.value_filter_depth -= 1
            cursor.consume('RBRACKET')

            # Проверяем на под-атрибут
            if cursor.at('DOT'):
                cursor.consume('DOT')
                sub_token = cursor.consume('ATTRIBUTE')
                if '.' in sub_token.value or ':' in sub_token.value:
                    raise cursor.error("Invalid sub-attribute", sub_token)
                sub_attribute = sub_token.value

            return AttributePath(
                schema_urn=schema_urn,
                attribute=attribute,
                sub_attribute=sub_attribute,
                value_filter=value_filter,
            )

        return AttributePath(schema_urn=schema_urn, attribute=attribute, sub_attribute=sub_attribute)

    @staticmethod
    def _split_attribute(raw: str):
        """Разделяет 'urn:...:User:name.givenName' на (urn, attr, sub)"""
        schema_urn = None
        if raw.lower().startswith('urn:'):
            # имя атрибута не содержит ':', поэтому последний ':' отделяет URN
            schema_urn, _, raw = raw.rpartition(':')
        attribute, _, sub_attribute = raw.partition('.')
        return schema_urn, attribute, (sub_attribute or None)

    def _parse_value(self, cursor: _TokenCursor):
        """Парсит compValue"""
        token = cursor.current()

        if token is None:
            raise cursor.error("Expected value")

        if token.type == 'STRING':
            cursor.consume('STRING')
            try:
                return json.loads(token.value)
            except ValueError:
                raise cursor.error("Invalid string literal", token)

        if token.type == 'NUMBER':
            cursor.consume('NUMBER')
            return json.loads(token.value)

        if token.type == 'BOOLEAN':
            cursor.consume('BOOLEAN')
            return token.value.lower() == 'true'

        if token.type == 'NULL':
            cursor.consume('NULL')
            return None

        raise cursor.error(f"Expected value, got {token.type}", token)


_default_parser = FilterParser()


@lru_cache(maxsize=settings.filter_cache_size)
def parse_filter(filter_string: str) -> FilterNode:
    """Разбор фильтра с кэшированием (AST неизменяемо, поэтому его можно разделять)"""
    return _default_parser.parse(filter_string)


@lru_cache(maxsize=settings.filter_cache_size)
def parse_path(path_string: str) -> AttributePath:
    """Разбор пути PATCH с кэшированием"""
    return _default_parser.parse_path(path_string)
