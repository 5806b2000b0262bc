"""
registry package — реестр установленных объектов
"""

from .schema_registry import SchemaRegistry, quiet

__all__ = [
    "SchemaRegistry",
    "quiet",
]
