from unittest.mock import AsyncMock, MagicMock

import pytest

from query_pattern_doctor.domain import Cardinality
from query_pattern_doctor.relations import RelationFactsProvider
from query_pattern_doctor.relations.supabase import SupabaseSchemaProvider

PRIMARY_ROWS = [
    {"table_name": "customers", "column_name": "id"},
    {"table_name": "orders", "column_name": "id"},
    {"table_name": "profiles", "column_name": "customer_id"},
]
FOREIGN_ROWS = [
    {"table_name": "orders", "column_name": "customer_id", "foreign_table_name": "customers"},
    {"table_name": "profiles", "column_name": "customer_id", "foreign_table_name": "customers"},
]


def _client() -> MagicMock:
    async def run_query(project_ref: str, sql: str) -> list[dict]:
        return PRIMARY_ROWS if "PRIMARY KEY" in sql else FOREIGN_ROWS

    client = MagicMock()
    client.run_query = AsyncMock(side_effect=run_query)
    return client


class TestSupabaseSchemaProvider:
    def test_implements_protocol(self) -> None:
        assert isinstance(SupabaseSchemaProvider(_client(), "abcdefgh"), RelationFactsProvider)

    @pytest.mark.parametrize("schema", ["public; DROP TABLE x", "my-schema", ""])
    def test_rejects_unsafe_schema_names(self, schema: str) -> None:
        with pytest.raises(ValueError):
            SupabaseSchemaProvider(_client(), "abcdefgh", schema=schema)

    @pytest.mark.asyncio
    async def test_fetch_relations(self) -> None:
        client = _client()
        provider = SupabaseSchemaProvider(client, "abcdefgh", schema="sales")

        relations = await provider.fetch_relations()

        assert client.run_query.await_count == 2
        for call in client.run_query.call_args_list:
            project_ref, sql = call.args
            assert project_ref == "abcdefgh"
            assert "table_schema = 'sales'" in sql

        customers = relations.table("customers")
        assert customers is not None
        assert customers.primary_key_columns == frozenset({"id"})

    def test_foreign_key_yields_both_directions(self) -> None:
        relations = SupabaseSchemaProvider.build_relations(PRIMARY_ROWS, FOREIGN_ROWS)

        to_parent = relations.associations_targeting("customers", owner="orders")
        to_children = relations.associations_targeting("orders", owner="customers")

        assert [a.cardinality for a in to_parent] == [Cardinality.MANY_TO_ONE]
        assert [a.cardinality for a in to_children] == [Cardinality.ONE_TO_MANY]

    def test_foreign_key_that_is_the_primary_key_is_one_to_one(self) -> None:
        relations = SupabaseSchemaProvider.build_relations(PRIMARY_ROWS, FOREIGN_ROWS)

        assert [a.cardinality for a in relations.associations_targeting("profiles", owner="customers")] == [
            Cardinality.ONE_TO_ONE
        ]
        assert [a.cardinality for a in relations.associations_targeting("customers", owner="profiles")] == [
            Cardinality.ONE_TO_ONE
        ]

    def test_empty_schema(self) -> None:
        assert SupabaseSchemaProvider.build_relations([], []).is_empty
