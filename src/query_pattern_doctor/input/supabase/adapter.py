from datetime import UTC, datetime, timedelta
from typing import Any

from query_pattern_doctor.api import LogQueryParams, SupabaseManagementClient
from query_pattern_doctor.domain import QueryRecord
from query_pattern_doctor.input.supabase.parser import PostgresMessageParser


class SupabaseLogInput:
    """QueryInput adapter for Supabase ``postgres_logs``.

    Fetches statement log lines through the Management API once, on first
    iteration, and yields them as QueryRecords in execution order.

    Usage:
        async with SupabaseManagementClient(access_token="...") as client:
            input_source = SupabaseLogInput(client, project_ref="...")
            async for record in input_source:
                ...

    For testing, inject log rows via the from_log_rows() class method.
    """

    LOGS_SQL = """
        SELECT
            timestamp,
            event_message,
            metadata
        FROM postgres_logs
        WHERE event_message LIKE 'duration:%'
           OR event_message LIKE 'AUDIT:%'
        ORDER BY timestamp ASC
        LIMIT {limit}
    """

    def __init__(
        self,
        client: SupabaseManagementClient,
        project_ref: str,
        parser: PostgresMessageParser | None = None,
        lookback_minutes: int = 5,
        limit: int = 1000,
    ) -> None:
        self._client = client
        self._project_ref = project_ref
        self._parser = parser or PostgresMessageParser()
        self._lookback_minutes = lookback_minutes
        self._limit = limit
        self._records: list[QueryRecord] = []
        self._index: int = 0
        self._fetched: bool = False

    @classmethod
    def from_log_rows(
        cls,
        log_rows: list[dict[str, Any]],
        parser: PostgresMessageParser | None = None,
    ) -> "SupabaseLogInput":
        """Create adapter from pre-fetched log rows, bypassing the API client."""
        instance = cls.__new__(cls)
        instance._client = None  # type: ignore[assignment]
        instance._project_ref = ""
        instance._parser = parser or PostgresMessageParser()
        instance._lookback_minutes = 0
        instance._limit = 0
        instance._index = 0
        instance._fetched = True
        instance._records = instance._parse_rows(log_rows)
        return instance

    def __aiter__(self) -> "SupabaseLogInput":
        return self

    async def __anext__(self) -> QueryRecord:
        if not self._fetched:
            await self._fetch_logs()

        if self._index >= len(self._records):
            raise StopAsyncIteration

        record = self._records[self._index]
        self._index += 1
        return record

    async def refresh(self) -> None:
        """Fetch a fresh window of logs and restart iteration."""
        self._index = 0
        await self._fetch_logs()

    @property
    def record_count(self) -> int:
        return len(self._records)

    async def _fetch_logs(self) -> None:
        end_time = datetime.now(UTC)
        params = LogQueryParams(
            start_time=end_time - timedelta(minutes=self._lookback_minutes),
            end_time=end_time,
            sql=self.LOGS_SQL.format(limit=self._limit),
            limit=self._limit,
        )
        log_rows = await self._client.query_logs(self._project_ref, params)
        self._records = self._parse_rows(log_rows)
        self._fetched = True

    def _parse_rows(self, log_rows: list[dict[str, Any]]) -> list[QueryRecord]:
        records: list[QueryRecord] = []
        for row in log_rows:
            parsed = self._parser.parse_log_row(row)
            if parsed is None:
                continue
            records.append(
                QueryRecord(
                    sql=parsed.statement,
                    execution_time_ms=parsed.duration_ms or 0.0,
                    timestamp=parsed.timestamp,
                    source=f"supabase:{parsed.origin}:{parsed.session_id or 'unknown'}",
                )
            )
        return records
