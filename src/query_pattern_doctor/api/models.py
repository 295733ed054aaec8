from dataclasses import dataclass
from datetime import datetime, timedelta

MAX_LOG_ROWS = 1000
MAX_LOG_WINDOW = timedelta(hours=24)


@dataclass(frozen=True, slots=True)
class LogQueryParams:
    """Time window and query for the postgres_logs analytics endpoint."""

    start_time: datetime
    end_time: datetime
    sql: str
    limit: int = MAX_LOG_ROWS

    def validate(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.end_time - self.start_time > MAX_LOG_WINDOW:
            raise ValueError("Time range cannot exceed 24 hours")
        if not 0 < self.limit <= MAX_LOG_ROWS:
            raise ValueError(f"limit must be between 1 and {MAX_LOG_ROWS}")

    def as_request_params(self) -> dict[str, str]:
        return {
            "iso_timestamp_start": self.start_time.isoformat(),
            "iso_timestamp_end": self.end_time.isoformat(),
            "sql": self.sql,
        }
