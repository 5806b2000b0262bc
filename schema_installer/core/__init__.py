# schema_installer/core/__init__.py

from .models import (
    SchemaObjectKind,
    RegistryEntry,
    ColumnDefinition,
    install_order_key,
)

from .exceptions import (
    SchemaInstallerError,
    SchemaParsingError,
    SchemaValidationError,
    SchemaExecutionError,
    SchemaVerificationError,
    UnsupportedOperationError,
    SchemaRegistryError,
    ConfigurationError,
    handle_exception,
)

__all__ = [
    # models
    "SchemaObjectKind",
    "RegistryEntry",
    "ColumnDefinition",
    "install_order_key",

    # exceptions
    "SchemaInstallerError",
    "SchemaParsingError",
    "SchemaValidationError",
    "SchemaExecutionError",
    "SchemaVerificationError",
    "UnsupportedOperationError",
    "SchemaRegistryError",
    "ConfigurationError",
    "handle_exception",
]
