import asyncio
import logging
import re
from collections import defaultdict
from typing import Any

from query_pattern_doctor.api import SupabaseManagementClient
from query_pattern_doctor.domain import Association, Cardinality, RelationFacts, TableFacts

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SupabaseSchemaProvider:
    """Reads primary and foreign keys of one schema through the Management API.

    Every foreign key ``child.column -> parent`` yields two associations: a
    to-one association owned by the child and the inverse to-many one owned
    by the parent. A foreign key column that is the child's whole primary
    key makes the pair one-to-one.
    """

    PRIMARY_KEYS_SQL = """
        SELECT kcu.table_name, kcu.column_name
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
          ON kcu.constraint_name = tc.constraint_name
         AND kcu.table_schema = tc.table_schema
        WHERE tc.constraint_type = 'PRIMARY KEY'
          AND tc.table_schema = '{schema}'
        ORDER BY kcu.table_name, kcu.ordinal_position
    """

    FOREIGN_KEYS_SQL = """
        SELECT kcu.table_name, kcu.column_name, ccu.table_name AS foreign_table_name
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
          ON kcu.constraint_name = tc.constraint_name
         AND kcu.table_schema = tc.table_schema
        JOIN information_schema.constraint_column_usage ccu
          ON ccu.constraint_name = tc.constraint_name
         AND ccu.table_schema = tc.table_schema
        WHERE tc.constraint_type = 'FOREIGN KEY'
          AND tc.table_schema = '{schema}'
        ORDER BY kcu.table_name, kcu.column_name
    """

    def __init__(
        self,
        client: SupabaseManagementClient,
        project_ref: str,
        schema: str = "public",
    ) -> None:
        if not _IDENTIFIER.match(schema):
            raise ValueError(f"Invalid schema name: {schema!r}")
        self._client = client
        self._project_ref = project_ref
        self._schema = schema

    async def fetch_relations(self) -> RelationFacts:
        primary_rows, foreign_rows = await asyncio.gather(
            self._client.run_query(self._project_ref, self.PRIMARY_KEYS_SQL.format(schema=self._schema)),
            self._client.run_query(self._project_ref, self.FOREIGN_KEYS_SQL.format(schema=self._schema)),
        )
        relations = self.build_relations(primary_rows, foreign_rows)
        logger.info(
            "Loaded relation facts for schema %s: %d tables, %d associations",
            self._schema,
            len(relations.tables),
            len(relations.associations),
        )
        return relations

    @staticmethod
    def build_relations(
        primary_rows: list[dict[str, Any]], foreign_rows: list[dict[str, Any]]
    ) -> RelationFacts:
        primary_keys: dict[str, set[str]] = defaultdict(set)
        for row in primary_rows:
            primary_keys[row["table_name"]].add(row["column_name"])

        associations: dict[tuple[str, str], Association] = {}
        for row in foreign_rows:
            child = row["table_name"]
            column = row["column_name"]
            parent = row["foreign_table_name"]
            one_to_one = primary_keys.get(child) == {column}

            associations[(child, column)] = Association(
                target_table=parent,
                cardinality=Cardinality.ONE_TO_ONE if one_to_one else Cardinality.MANY_TO_ONE,
            )
            associations[(parent, f"{child}.{column}")] = Association(
                target_table=child,
                cardinality=Cardinality.ONE_TO_ONE if one_to_one else Cardinality.ONE_TO_MANY,
            )

        tables = [
            TableFacts(table=table, primary_key_columns=frozenset(columns))
            for table, columns in primary_keys.items()
        ]
        return RelationFacts.from_tables(tables, associations)
