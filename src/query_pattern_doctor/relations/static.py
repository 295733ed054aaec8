from collections.abc import Mapping, Sequence

from query_pattern_doctor.domain import Association, Cardinality, RelationFacts, TableFacts


class StaticRelationFacts:
    """Relation facts held in memory, for tests and hand-written schemas."""

    def __init__(self, relations: RelationFacts | None = None) -> None:
        self._relations = relations or RelationFacts()

    @classmethod
    def from_mapping(
        cls,
        primary_keys: Mapping[str, Sequence[str]],
        associations: Mapping[tuple[str, str], tuple[str, Cardinality | str]] | None = None,
    ) -> "StaticRelationFacts":
        """Build facts from plain values.

        ``associations`` maps ``(owning_table, field)`` to
        ``(target_table, cardinality)``.
        """
        tables = [
            TableFacts(table=table, primary_key_columns=frozenset(columns))
            for table, columns in primary_keys.items()
        ]
        index = {
            key: Association(target_table=target, cardinality=Cardinality(cardinality))
            for key, (target, cardinality) in (associations or {}).items()
        }
        return cls(RelationFacts.from_tables(tables, index))

    async def fetch_relations(self) -> RelationFacts:
        return self._relations
