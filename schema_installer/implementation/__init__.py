"""
implementation package — обработчики видов объектов (проверка и удаление)
"""

from .base import SchemaImpl, CatalogImpl, NoDropImpl
from .registry import HandlerRegistry, STANDARD_HANDLERS

__all__ = [
    "SchemaImpl",
    "CatalogImpl",
    "NoDropImpl",
    "HandlerRegistry",
    "STANDARD_HANDLERS",
]
