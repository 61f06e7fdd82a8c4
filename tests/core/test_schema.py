"""Tests for TableSchema, build_table_schema and SchemaRegistry."""

from __future__ import annotations

import threading
import time

import pytest

from rowspine.core.errors import SchemaDefinitionError
from rowspine.core.record import Record
from rowspine.core.schema import (
    SchemaRegistry,
    TableSchema,
    build_table_schema,
    default_registry,
)
from rowspine.core.types import ColumnFormat, classify_column_type

from tests._support.describes import MEMBER_ADDRESSES_DESCRIBE, MEMBERS_DESCRIBE
from tests._support.executors import RecordingExecutor
from tests._support.records import IntrospectedMember


class TestBuildTableSchema:
    def test_members(self) -> None:
        schema = build_table_schema(MEMBERS_DESCRIBE)
        assert schema.loaded is True
        assert schema.primary_keys == ("member_id",)
        assert schema.auto_increment == "member_id"
        assert len(schema.columns) == 15
        assert list(schema.columns)[:3] == ["member_id", "email", "username"]

    def test_member_addresses(self) -> None:
        schema = build_table_schema(MEMBER_ADDRESSES_DESCRIBE)
        assert schema.primary_keys == ("member_id", "type")
        assert schema.auto_increment is None

    def test_on_update_extra_is_not_auto_increment(self) -> None:
        schema = build_table_schema(MEMBERS_DESCRIBE)
        assert schema.column("last_updated").format is ColumnFormat.DATETIME
        assert schema.auto_increment != "last_updated"

    def test_descriptors(self) -> None:
        schema = build_table_schema(MEMBERS_DESCRIBE)
        balance = schema.column("balance")
        assert balance.precision == 2
        assert balance.nullable is False
        assert schema.column("username").nullable is True
        assert schema.column("membership_type").options[0] == "Free"

    def test_empty_rows(self) -> None:
        schema = build_table_schema([])
        assert schema.columns == {}
        assert not schema.is_complete


class TestTableSchema:
    def test_defaults(self) -> None:
        schema = TableSchema()
        assert schema.loaded is False
        assert not schema.is_complete
        assert schema.column("anything") is None

    def test_is_complete_needs_keys_and_columns(self) -> None:
        columns = {"id": classify_column_type("int(11)")}
        assert not TableSchema(columns=columns).is_complete
        assert TableSchema(columns=columns, primary_keys=("id",)).is_complete

    def test_has_column(self) -> None:
        schema = build_table_schema(MEMBERS_DESCRIBE)
        assert schema.has_column("email")
        assert not schema.has_column("cityz")

    def test_undeclared_primary_key_rejected(self) -> None:
        columns = {"id": classify_column_type("int(11)")}
        with pytest.raises(SchemaDefinitionError, match="other"):
            TableSchema(columns=columns, primary_keys=("other",))

    def test_undeclared_auto_increment_rejected(self) -> None:
        columns = {"id": classify_column_type("int(11)")}
        with pytest.raises(SchemaDefinitionError):
            TableSchema(columns=columns, primary_keys=("id",), auto_increment="seq")


class TestSchemaRegistry:
    def test_get_or_build_builds_once(self) -> None:
        registry = SchemaRegistry()
        calls = []

        def factory() -> TableSchema:
            calls.append(1)
            return build_table_schema(MEMBERS_DESCRIBE)

        first = registry.get_or_build("members", factory)
        second = registry.get_or_build("members", factory)
        assert first is second
        assert len(calls) == 1
        assert "members" in registry
        assert len(registry) == 1

    def test_set_get_discard_clear(self) -> None:
        registry = SchemaRegistry()
        schema = build_table_schema(MEMBERS_DESCRIBE)
        registry.set("a", schema)
        registry.set("b", schema)
        assert registry.get("a") is schema
        registry.discard("a")
        assert registry.get("a") is None
        registry.discard("a")
        registry.clear()
        assert len(registry) == 0

    def test_factory_errors_do_not_cache(self) -> None:
        registry = SchemaRegistry()

        def broken() -> TableSchema:
            raise SchemaDefinitionError("no table")

        with pytest.raises(SchemaDefinitionError):
            registry.get_or_build("x", broken)
        assert "x" not in registry

    def test_concurrent_builds_run_factory_once(self) -> None:
        registry = SchemaRegistry()
        calls = []
        results = []

        def factory() -> TableSchema:
            calls.append(1)
            time.sleep(0.01)
            return build_table_schema(MEMBERS_DESCRIBE)

        def worker() -> None:
            results.append(registry.get_or_build("members", factory))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert len(results) == 8
        assert all(result is results[0] for result in results)

    def test_different_keys_build_in_parallel(self) -> None:
        registry = SchemaRegistry()
        members_building = threading.Event()
        addresses_built = threading.Event()
        waited = []

        def build_members() -> TableSchema:
            members_building.set()
            waited.append(addresses_built.wait(timeout=5))
            return build_table_schema(MEMBERS_DESCRIBE)

        def build_addresses() -> TableSchema:
            addresses_built.set()
            return build_table_schema(MEMBER_ADDRESSES_DESCRIBE)

        worker = threading.Thread(target=registry.get_or_build, args=("members", build_members))
        worker.start()
        assert members_building.wait(timeout=5)
        registry.get_or_build("member_addresses", build_addresses)
        worker.join()

        assert waited == [True]
        assert len(registry) == 2

    def test_default_registry_is_shared(self) -> None:
        assert default_registry() is default_registry()


class TestSchemaResolution:
    """absent -> loaded through DESCRIBE, at most once per record type."""

    def test_introspects_on_first_use(self, executor: RecordingExecutor) -> None:
        member = IntrospectedMember(executor, fields={"member_id": 5})
        assert member.schema is None
        assert executor.describe_calls == []

        member.load()

        assert executor.describe_calls == ["members"]
        assert member.schema.loaded
        assert member.schema.primary_keys == ("member_id",)

    def test_second_instance_reuses_cached_schema(self, executor: RecordingExecutor) -> None:
        IntrospectedMember(executor, fields={"member_id": 5}).load()
        IntrospectedMember(executor, fields={"member_id": 6}).load()
        assert executor.describe_calls == ["members"]
        assert IntrospectedMember in default_registry()

    def test_stub_schema_is_replaced(self, executor: RecordingExecutor) -> None:
        class PartialMember(Record):
            table_name = "members"
            schema = TableSchema(
                columns={"member_id": classify_column_type("int(11)")}
            )

        member = PartialMember(executor, fields={"member_id": 5})
        member.load()
        assert executor.describe_calls == ["members"]
        assert len(member.schema.columns) == 15

    def test_complete_declared_schema_skips_introspection(
        self, executor: RecordingExecutor
    ) -> None:
        descriptor = classify_column_type("int(11)")

        class Counter(Record):
            table_name = "counters"
            schema = TableSchema(columns={"id": descriptor}, primary_keys=("id",))

        counter = Counter(executor, fields={"id": 1})
        counter.load()
        assert executor.describe_calls == []
        assert counter.schema.loaded is False
        assert executor.last[0] == "SELECT * FROM counters WHERE `id` = :Wid"

    def test_private_registry(self, executor: RecordingExecutor) -> None:
        registry = SchemaRegistry()

        class PrivateMember(Record):
            table_name = "members"
            schema_registry = registry

        assert len(registry) == 0
        PrivateMember(executor, fields={"member_id": 1}).load()
        assert PrivateMember in registry
        assert PrivateMember not in default_registry()

    def test_empty_describe_is_an_error(self) -> None:
        executor = RecordingExecutor({"members": []})
        with pytest.raises(SchemaDefinitionError, match="no columns"):
            IntrospectedMember(executor, fields={"member_id": 1}).load()
        assert IntrospectedMember not in default_registry()

    def test_introspection_needs_an_executor(self) -> None:
        with pytest.raises(SchemaDefinitionError, match="executor"):
            IntrospectedMember(fields={"member_id": 1}).load()
