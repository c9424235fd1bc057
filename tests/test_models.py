"""Tests for registry value types."""

from __future__ import annotations

from pgregistry.models import TableDescriptor, TableType


def test_table_descriptor_copies_row_columns() -> None:
    descriptor = TableDescriptor.from_row({"table_name": "orders", "table_type": "BASE TABLE"})

    assert descriptor == TableDescriptor(name="orders", type="BASE TABLE")
    assert descriptor.table_type is TableType.BASE_TABLE
    assert descriptor.type == TableType.BASE_TABLE


def test_table_descriptor_keeps_unknown_types_verbatim() -> None:
    descriptor = TableDescriptor.from_row({"table_name": "remote", "table_type": "SYSTEM VIEW"})

    assert descriptor.type == "SYSTEM VIEW"
    assert descriptor.table_type is None
