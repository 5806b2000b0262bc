"""
Пользовательские исключения установщика схемы.
"""

from __future__ import annotations
from typing import Optional, Dict, Any


class SchemaInstallerError(Exception):
    """Базовое исключение установщика схемы."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: Optional[dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class SchemaParsingError(SchemaInstallerError):
    """SQL не удалось классифицировать, либо форма не поддерживается."""

    def __init__(self, message: str, sql: str = None, position: int = None):
        details: Dict[str, Any] = {}
        if sql is not None:
            details["sql"] = sql
        if position is not None:
            details["position"] = position
        super().__init__(message, "PARSING_ERROR", details)
        self.sql = sql


class SchemaValidationError(SchemaInstallerError):
    """Ошибка валидации набора объектов (дубликаты, недопустимые имена)."""

    def __init__(self, message: str, object_name: str = None):
        details: Dict[str, Any] = {}
        if object_name is not None:
            details["object_name"] = object_name
        super().__init__(message, "VALIDATION_ERROR", details)
        self.object_name = object_name


class SchemaExecutionError(SchemaInstallerError):
    """Ошибка выполнения DDL при удалении, создании или изменении объекта."""

    def __init__(self, message: str, object_name: str = None, sql: str = None):
        details: Dict[str, Any] = {}
        if object_name:
            details["object_name"] = object_name
        if sql:
            details["sql"] = sql
        super().__init__(message, "EXECUTION_ERROR", details)
        self.object_name = object_name
        self.sql = sql


class SchemaVerificationError(SchemaInstallerError):
    """После установки объект отсутствует в базе."""

    def __init__(self, object_name: str):
        super().__init__(
            f"Schema Object {object_name} was not in the database",
            "VERIFICATION_ERROR",
            {"object_name": object_name},
        )
        self.object_name = object_name


class UnsupportedOperationError(SchemaInstallerError):
    """Операция явно не поддерживается (перенос таблицы, AutoProc без ключа и т.п.)."""

    def __init__(self, message: str, object_name: str = None):
        details: Dict[str, Any] = {}
        if object_name:
            details["object_name"] = object_name
        super().__init__(message, "UNSUPPORTED_OPERATION", details)


class SchemaRegistryError(SchemaInstallerError):
    """Ошибка чтения или записи реестра схемы."""

    def __init__(self, message: str, schema_group: str = None):
        details: Dict[str, Any] = {}
        if schema_group is not None:
            details["schema_group"] = schema_group
        super().__init__(message, "REGISTRY_ERROR", details)


class ConfigurationError(SchemaInstallerError):
    """Ошибка конфигурации системы."""

    def __init__(self, message: str, config_key: str = None, config_value: str = None):
        details: Dict[str, Any] = {}
        if config_key:
            details["config_key"] = config_key
        if config_value:
            details["config_value"] = config_value
        super().__init__(message, "CONFIGURATION_ERROR", details)


def handle_exception(exception: Exception) -> dict:
    if isinstance(exception, SchemaInstallerError):
        return exception.to_dict()
    return {
        "error": str(exception),
        "code": "UNKNOWN_ERROR",
        "details": {
            "exception_type": exception.__class__.__name__,
        },
    }
