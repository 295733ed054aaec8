from collections.abc import Sequence

from query_pattern_doctor.domain import QueryRecord


class ManualInput:
    """Input source for feeding statements programmatically.

    Plain strings are wrapped into QueryRecords with no timing data.
    """

    def __init__(self, records: Sequence[QueryRecord | str]) -> None:
        self._records: tuple[QueryRecord, ...] = tuple(
            QueryRecord(sql=record, source="manual") if isinstance(record, str) else record
            for record in records
        )
        self._index: int = 0

    def __aiter__(self) -> "ManualInput":
        return self

    async def __anext__(self) -> QueryRecord:
        if self._index >= len(self._records):
            raise StopAsyncIteration
        record = self._records[self._index]
        self._index += 1
        return record
