"""
Разбор директивы AUTOPROC.

Грамматика:
    AUTOPROC <Verb>[,<Verb>...]|All <table> [Single=<name>] [Plural=<name>]
             [Name=<template>] [ExecuteAsOwner=<bool>]

Пример:
    -- AUTOPROC All [Beer]
    -- AUTOPROC Insert,Update [People] Single=Person Name={1}_{0}
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Flag
from typing import Dict, Optional

from ..core.exceptions import SchemaParsingError
from ..utils.naming import SQL_NAME_EXPRESSION, format_sql_name


AUTOPROC_EXPRESSION = (
    rf"AUTOPROC\s+(?P<verbs>\w+(?:\s*,\s*\w+)*)\s+(?P<table>{SQL_NAME_EXPRESSION})"
    r"(?P<options>(?:[ \t]+\w+=[^\s]+)*)"
)

_DIRECTIVE_RE = re.compile(AUTOPROC_EXPRESSION, re.IGNORECASE | re.DOTALL)
_OPTION_RE = re.compile(r"(\w+)=([^\s]+)")


class ProcTypes(Flag):
    """Набор генерируемых объектов."""
    TABLE = 1 << 0
    ID_TABLE = 1 << 1
    SELECT = 1 << 2
    INSERT = 1 << 3
    UPDATE = 1 << 4
    UPSERT = 1 << 5
    DELETE = 1 << 6
    SELECT_MANY = 1 << 7
    INSERT_MANY = 1 << 8
    UPDATE_MANY = 1 << 9
    UPSERT_MANY = 1 << 10
    DELETE_MANY = 1 << 11
    FIND = 1 << 12
    ALL = (
        TABLE | ID_TABLE
        | SELECT | INSERT | UPDATE | UPSERT | DELETE
        | SELECT_MANY | INSERT_MANY | UPDATE_MANY | UPSERT_MANY | DELETE_MANY
        | FIND
    )


# Имена глаголов в директиве (без учёта регистра)
_VERB_NAMES: Dict[str, ProcTypes] = {
    "table": ProcTypes.TABLE,
    "idtable": ProcTypes.ID_TABLE,
    "select": ProcTypes.SELECT,
    "insert": ProcTypes.INSERT,
    "update": ProcTypes.UPDATE,
    "upsert": ProcTypes.UPSERT,
    "delete": ProcTypes.DELETE,
    "selectmany": ProcTypes.SELECT_MANY,
    "insertmany": ProcTypes.INSERT_MANY,
    "updatemany": ProcTypes.UPDATE_MANY,
    "upsertmany": ProcTypes.UPSERT_MANY,
    "deletemany": ProcTypes.DELETE_MANY,
    "find": ProcTypes.FIND,
    "all": ProcTypes.ALL,
}


def parse_verbs(text: str) -> ProcTypes:
    result = ProcTypes(0)
    for verb in text.split(","):
        key = verb.strip().lower()
        if key not in _VERB_NAMES:
            raise SchemaParsingError(f"Unknown AUTOPROC type: {verb.strip()}", sql=text)
        result |= _VERB_NAMES[key]
    return result


def _parse_bool(value: str, sql: str) -> bool:
    v = value.strip().lower()
    if v in ("true", "1", "yes"):
        return True
    if v in ("false", "0", "no"):
        return False
    raise SchemaParsingError(f"Invalid ExecuteAsOwner value: {value}", sql=sql)


@dataclass(frozen=True)
class AutoProcDirective:
    types: ProcTypes
    table_name: str
    single: Optional[str] = None
    plural: Optional[str] = None
    name_template: Optional[str] = None
    execute_as_owner: bool = False

    @classmethod
    def parse(cls, text: str) -> "AutoProcDirective":
        m = _DIRECTIVE_RE.search(text or "")
        if not m:
            raise SchemaParsingError("Cannot parse AUTOPROC directive", sql=text)

        options: Dict[str, str] = {
            k.lower(): v for k, v in _OPTION_RE.findall(m.group("options") or "")
        }
        unknown = set(options) - {"single", "plural", "name", "executeasowner"}
        if unknown:
            raise SchemaParsingError(
                f"Unknown AUTOPROC option: {', '.join(sorted(unknown))}", sql=text
            )

        execute_as_owner = False
        if "executeasowner" in options:
            execute_as_owner = _parse_bool(options["executeasowner"], text)

        return cls(
            types=parse_verbs(m.group("verbs")),
            table_name=format_sql_name(m.group("table")),
            single=options.get("single"),
            plural=options.get("plural"),
            name_template=options.get("name"),
            execute_as_owner=execute_as_owner,
        )
