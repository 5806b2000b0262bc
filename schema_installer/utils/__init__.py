"""
Пакет utils: вспомогательные утилиты установщика схемы.

Содержит чистые функции без побочных эффектов, используемые
различными слоями системы (parser, autoproc, install).

Состав пакета:
- naming: разбор, канонизация и экранирование имён SQL Server
- validators: проверка имён и дубликатов
- signature: подписи содержимого объектов
"""

from .naming import (
    SQL_NAME_EXPRESSION,
    unformat_sql_name,
    format_sql_name,
    table_name_from_index_name,
    index_name_from_full_name,
    strip_name_prefix,
    quote_literal,
    SqlName,
)

from .validators import (
    is_valid_sql_name,
    assert_valid_sql_name,
    assert_unique_names,
)

from .signature import (
    calculate_signature,
    random_signature,
)

__all__ = [
    # naming
    "SQL_NAME_EXPRESSION",
    "unformat_sql_name",
    "format_sql_name",
    "table_name_from_index_name",
    "index_name_from_full_name",
    "strip_name_prefix",
    "quote_literal",
    "SqlName",

    # validators
    "is_valid_sql_name",
    "assert_valid_sql_name",
    "assert_unique_names",

    # signature
    "calculate_signature",
    "random_signature",
]
