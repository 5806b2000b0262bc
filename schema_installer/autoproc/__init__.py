"""
autoproc package — генерация CRUD-процедур по директиве AUTOPROC
"""

from .directive import AUTOPROC_EXPRESSION, AutoProcDirective, ProcTypes, parse_verbs
from .singularizer import Singularizer, singularize
from .generator import AutoProc, ColumnProvider, join_columns

__all__ = [
    "AUTOPROC_EXPRESSION",
    "AutoProcDirective",
    "ProcTypes",
    "parse_verbs",
    "Singularizer",
    "singularize",
    "AutoProc",
    "ColumnProvider",
    "join_columns",
]
