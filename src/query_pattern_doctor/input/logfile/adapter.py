from pathlib import Path

from query_pattern_doctor.domain import QueryRecord
from query_pattern_doctor.input.logfile.parser import PostgresLogLineParser


class LogFileInput:
    """Input adapter that reads executed statements from a PostgreSQL log file."""

    def __init__(
        self,
        file_path: str | Path,
        parser: PostgresLogLineParser | None = None,
    ) -> None:
        self._file_path = Path(file_path)
        self._parser = parser or PostgresLogLineParser()
        self._lines: list[str] | None = None
        self._index: int = 0

    @classmethod
    def from_lines(
        cls,
        lines: list[str],
        parser: PostgresLogLineParser | None = None,
    ) -> "LogFileInput":
        """Create adapter from pre-loaded lines."""
        instance = cls(Path("/dev/null"), parser)
        instance._lines = list(lines)
        return instance

    def __aiter__(self) -> "LogFileInput":
        return self

    async def __anext__(self) -> QueryRecord:
        lines = self._lines if self._lines is not None else self._read_lines()

        while self._index < len(lines):
            parsed = self._parser.parse_line(lines[self._index])
            self._index += 1
            if parsed is None:
                continue

            params: dict[str, str | None] = {}
            if self._index < len(lines):
                detail = self._parser.parse_parameters(lines[self._index])
                if detail is not None:
                    params = detail
                    self._index += 1

            return QueryRecord(
                sql=parsed.statement,
                params=params,
                execution_time_ms=parsed.duration_ms or 0.0,
                timestamp=parsed.timestamp,
                source=f"logfile:{parsed.origin}:{parsed.session_id or 'unknown'}",
            )

        raise StopAsyncIteration

    def _read_lines(self) -> list[str]:
        if not self._file_path.exists():
            raise FileNotFoundError(f"Log file not found: {self._file_path}")
        with open(self._file_path, encoding="utf-8") as handle:
            self._lines = handle.readlines()
        return self._lines
