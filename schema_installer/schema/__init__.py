"""
schema package — объекты схемы и их наборы
"""

from .schema_object import SchemaObject
from .collection import SchemaObjectCollection

__all__ = [
    "SchemaObject",
    "SchemaObjectCollection",
]
