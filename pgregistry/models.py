"""Shared value types returned by the registry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class TableType(str, Enum):
    """Catalog classifications PostgreSQL reports in ``information_schema.tables``."""

    BASE_TABLE = "BASE TABLE"
    VIEW = "VIEW"
    FOREIGN = "FOREIGN"
    LOCAL_TEMPORARY = "LOCAL TEMPORARY"


@dataclass(frozen=True, slots=True)
class TableDescriptor:
    """One table-like object listed by the introspection query."""

    name: str
    type: str

    @property
    def table_type(self) -> TableType | None:
        """Known classification for ``type``, or ``None`` for unlisted values."""

        try:
            return TableType(self.type)
        except ValueError:
            return None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> TableDescriptor:
        return cls(name=row["table_name"], type=row["table_type"])


__all__ = ["TableDescriptor", "TableType"]
