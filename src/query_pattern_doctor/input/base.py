from typing import Protocol, Self, runtime_checkable

from query_pattern_doctor.domain import QueryRecord


@runtime_checkable
class QueryInput(Protocol):
    """Protocol for async sources of executed statements."""

    def __aiter__(self) -> Self:
        ...

    async def __anext__(self) -> QueryRecord:
        ...
