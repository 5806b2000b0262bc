"""
Обработчики объектов безопасности: участники, схемы, разрешения, ключи.

Ключи и сертификаты никогда не удаляются: потеря ключа означает потерю данных.
"""
from __future__ import annotations

import re
from typing import List, Optional

from ..core.constants import MASTER_KEY_NAME
from ..core.models import SchemaObjectKind
from ..utils.naming import SQL_NAME_EXPRESSION, SqlName, index_name_from_full_name, unformat_sql_name
from .base import CatalogImpl, NoDropImpl, SchemaImpl


class LoginImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.LOGIN,)
    NAME_PREFIX = "LOGIN"
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.server_principals WHERE name = ? AND type <> 'R'"
    DROP_TEMPLATE = "DROP LOGIN {0}"


class UserImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.USER,)
    NAME_PREFIX = "USER"
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.database_principals WHERE name = ? AND type <> 'R'"
    DROP_TEMPLATE = "DROP USER {0}"


class RoleImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.ROLE,)
    NAME_PREFIX = "ROLE"
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.database_principals WHERE name = ? AND type = 'R'"
    DROP_TEMPLATE = "DROP ROLE {0}"


class SchemaImplementation(CatalogImpl):
    KINDS = (SchemaObjectKind.SCHEMA,)
    NAME_PREFIX = "SCHEMA"
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.schemas WHERE name = ?"
    DROP_TEMPLATE = "DROP SCHEMA {0}"


class MasterKeyImpl(NoDropImpl):
    KINDS = (SchemaObjectKind.MASTER_KEY,)

    def exists(self, connection) -> bool:
        return self._count(
            connection, "SELECT COUNT(*) FROM sys.symmetric_keys WHERE name = ?", MASTER_KEY_NAME
        )


class CertificateImpl(NoDropImpl):
    KINDS = (SchemaObjectKind.CERTIFICATE,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.certificates WHERE name = ?"


class SymmetricKeyImpl(NoDropImpl):
    KINDS = (SchemaObjectKind.SYMMETRIC_KEY,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.symmetric_keys WHERE name = ?"


_PERMISSION_RE = re.compile(
    rf"(?P<permission>\w+)\s+ON\s+(?P<object>{SQL_NAME_EXPRESSION})\s+TO\s+(?P<user>{SQL_NAME_EXPRESSION})",
    re.IGNORECASE,
)
_SCOPE_RE = re.compile(r"^\w+\s*::\s*")


class PermissionImpl(SchemaImpl):
    """
    Разрешение: имя вида "SELECT ON [Beer] TO [public]".
    Удаление — REVOKE с тем же текстом.
    """

    KINDS = (SchemaObjectKind.PERMISSION,)

    PERMISSIONS_QUERY = """
        SELECT p.permission_name
            FROM sys.database_principals u
            JOIN sys.database_permissions p ON (u.principal_id = p.grantee_principal_id)
            LEFT JOIN sys.objects o ON (p.class_desc = 'OBJECT_OR_COLUMN' AND p.major_id = o.object_id)
            LEFT JOIN sys.types t ON (p.class_desc = 'TYPE' AND p.major_id = t.user_type_id)
            WHERE u.name = ? AND ISNULL(o.name, t.name) = ?
    """

    def _parse_name(self, name: str) -> Optional[SqlName]:
        m = _PERMISSION_RE.search(name or "")
        if not m:
            raise ValueError(f"Cannot parse permission {name}")
        self.permission = m.group("permission").upper()
        self.user_name = unformat_sql_name(m.group("user"))
        self.object_name = _SCOPE_RE.sub("", index_name_from_full_name(m.group("object")))
        return SqlName(object=self.object_name)

    def granted(self, connection) -> List[str]:
        rows = connection.query(self.PERMISSIONS_QUERY, (self.user_name, self.object_name))
        return [str(r["permission_name"]).upper() for r in rows]

    def exists(self, connection) -> bool:
        permissions = self.granted(connection)
        if self.permission == "EXEC":
            return "EXECUTE" in permissions
        if self.permission == "ALL":
            return bool(permissions)
        return self.permission in permissions

    def drop_statements(self, connection) -> List[str]:
        return [f"REVOKE {self.full_name}"]
