from typing import Protocol, runtime_checkable

from query_pattern_doctor.domain import RelationFacts


@runtime_checkable
class RelationFactsProvider(Protocol):
    """Protocol for sources of primary key and association metadata."""

    async def fetch_relations(self) -> RelationFacts:
        ...
