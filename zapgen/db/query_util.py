"""
Small helpers shared by the query modules.
"""

from __future__ import annotations

from typing import Any, Iterable

# Attribute storage size: explicit max length wins over the atomic type size.
ATTRIBUTE_SIZE_SQL = "COALESCE(ATTRIBUTE.MAX_LENGTH, ATOMIC.SIZE, 0)"

ATOMIC_JOIN_SQL = """
    LEFT JOIN ATOMIC
      ON ATOMIC.PACKAGE_REF = ATTRIBUTE.PACKAGE_REF
     AND LOWER(ATOMIC.NAME) = LOWER(ATTRIBUTE.TYPE)
"""


def placeholders(n: int) -> str:
    if int(n) <= 0:
        return ""
    return ", ".join("?" for _ in range(int(n)))


def id_list(items: Iterable[Any], key: str = "endpoint_type_id") -> list[int]:
    """
    Normalize a list of ids or of rows carrying `key` into a list of ints.
    """
    ids: list[int] = []
    for item in items or []:
        if isinstance(item, dict):
            value = item.get(key)
        else:
            value = getattr(item, key, item)
        if value is None:
            continue
        ids.append(int(value))
    return ids


def as_bool(value: Any) -> bool:
    return bool(int(value)) if value is not None else False
