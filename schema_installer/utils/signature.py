"""
Подписи объектов: короткий детерминированный дайджест текста.

SHA-1 от UTF-16LE представления, base64 (28 символов — ровно varchar(28) в реестре).
"""

from __future__ import annotations

import base64
import hashlib
import uuid


def calculate_signature(sql: str) -> str:
    digest = hashlib.sha1((sql or "").encode("utf-16-le")).digest()
    return base64.b64encode(digest).decode("ascii")


def random_signature() -> str:
    """Подпись, которая никогда не совпадёт с сохранённой (объект всегда «изменён»)."""
    return calculate_signature(uuid.uuid4().hex)
