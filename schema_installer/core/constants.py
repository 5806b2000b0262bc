"""
Константы декларативного установщика схемы SQL Server.
"""

# Версия системы
VERSION = "1.0.0"
TOOL_NAME = "SQL Server Schema Installer"

# Таблица реестра установленных объектов
SCHEMA_REGISTRY_TABLE = "Insight_SchemaRegistry"

# Префикс временных (теневых) таблиц при миграции колонок
TEMP_TABLE_PREFIX = "Insight__tmp_"

# Версия генератора AutoProc: входит в подпись, смена версии форсирует перегенерацию
AUTOPROC_VERSION_SIGNATURE = "1.1.2.23"

# Имя главного ключа базы в sys.symmetric_keys
MASTER_KEY_NAME = "##MS_DatabaseMasterKey##"

# Схема по умолчанию
DEFAULT_SCHEMA = "dbo"

# Символы, недопустимые в имени объекта:
#   -   начинает комментарий
#   ;   завершает оператор
#   '   завершает строку
INSECURE_SQL_CHARS = ("-", ";", "'")

# Типы с длиной (MAX или число)
LENGTH_TYPES = ("char", "nchar", "varchar", "nvarchar", "binary", "varbinary")

# Типы, у которых max_length в каталоге хранится в байтах (по 2 на символ)
UNICODE_TYPES = ("nchar", "nvarchar")

# Типы с дробной частью секунд (только масштаб)
SCALE_TYPES = ("datetime2", "time", "datetimeoffset")

# Типы с точностью и масштабом
PRECISION_SCALE_TYPES = ("decimal", "numeric")

# Типы, всегда доступные только для чтения
READONLY_TYPES = ("rowversion", "timestamp")

# Конфигурация установщика по умолчанию
DEFAULT_INSTALLER_CONFIG = {
    "repair_missing": True,
    "verify": True,
    "strip_print_statements": False,
    "registry_table": SCHEMA_REGISTRY_TABLE,
}
