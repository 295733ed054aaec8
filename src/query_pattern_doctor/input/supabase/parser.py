import csv
import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class ParsedStatement:
    """A statement recovered from a PostgreSQL log message.

    ``origin`` is ``"duration"`` for ``log_min_duration_statement`` lines,
    which carry timing, ``"statement"`` for ``log_statement`` lines and
    ``"audit"`` for pgaudit lines, neither of which do.
    """

    statement: str
    origin: str
    duration_ms: float | None = None
    command: str | None = None
    statement_name: str | None = None
    timestamp: datetime | None = None
    user_name: str | None = None
    database_name: str | None = None
    session_id: str | None = None


class PostgresMessageParser:
    """Parser for the message part of PostgreSQL and pgaudit log entries."""

    AUDIT_PREFIX = re.compile(
        r"^AUDIT:\s*"
        r"(?P<audit_type>SESSION|OBJECT),"
        r"(?P<statement_id>\d+),"
        r"(?P<substatement_id>\d+),"
        r"(?P<command_class>\w+),"
        r"(?P<command>\w+(?:\s+\w+)*),"
        r"(?P<object_type>[^,]*),"
        r"(?P<object_name>[^,]*),"
    )

    DURATION_MESSAGE = re.compile(
        r"^duration:\s*(?P<ms>\d+(?:\.\d+)?)\s*ms\s+"
        r"(?:statement|execute\s+(?P<name>[^:]+)):\s*"
        r"(?P<sql>.+)$",
        re.DOTALL,
    )

    STATEMENT_MESSAGE = re.compile(
        r"^(?:statement|execute\s+(?P<name>[^:]+)):\s*(?P<sql>.+)$",
        re.DOTALL,
    )

    def parse_message(self, message: str) -> ParsedStatement | None:
        """Parse a log message. Returns None if it carries no statement."""
        message = message.strip()
        if message.startswith("AUDIT:"):
            return self._parse_audit(message)
        if message.startswith("duration:"):
            return self._parse_duration(message)
        if message.startswith(("statement:", "execute ")):
            return self._parse_statement(message)
        return None

    def parse_log_row(self, row: dict[str, Any]) -> ParsedStatement | None:
        """Parse a row from the Management API ``postgres_logs`` endpoint.

        Expected row structure:
        {
            "event_message": "duration: 1.2 ms  statement: SELECT ...",
            "timestamp": "2025-01-14T12:00:00Z" or unix microseconds,
            "metadata": [...] or flattened parsed.* fields
        }
        """
        event_message = row.get("event_message") or ""
        parsed = self.parse_message(event_message)
        if parsed is None:
            return None

        return replace(
            parsed,
            timestamp=self._extract_timestamp(row),
            user_name=self._extract_nested(row, "parsed.user_name", "user_name"),
            database_name=self._extract_nested(row, "parsed.database_name", "database_name"),
            session_id=self._extract_nested(row, "parsed.session_id", "session_id"),
        )

    def _parse_audit(self, message: str) -> ParsedStatement | None:
        match = self.AUDIT_PREFIX.match(message)
        if not match:
            return None

        remainder = message[match.end() :]
        fields = next(csv.reader([remainder]), [])
        statement = fields[0].strip() if fields else ""
        if not statement:
            return None

        return ParsedStatement(
            statement=statement,
            origin="audit",
            command=match.group("command"),
        )

    def _parse_duration(self, message: str) -> ParsedStatement | None:
        match = self.DURATION_MESSAGE.match(message)
        if not match:
            return None

        name = match.group("name")
        return ParsedStatement(
            statement=match.group("sql").strip(),
            origin="duration",
            duration_ms=float(match.group("ms")),
            statement_name=name.strip() if name else None,
        )

    def _parse_statement(self, message: str) -> ParsedStatement | None:
        match = self.STATEMENT_MESSAGE.match(message)
        if not match:
            return None

        name = match.group("name")
        return ParsedStatement(
            statement=match.group("sql").strip(),
            origin="statement",
            statement_name=name.strip() if name else None,
        )

    def _extract_timestamp(self, row: dict[str, Any]) -> datetime | None:
        ts = row.get("timestamp")
        if ts is None:
            return None

        if isinstance(ts, datetime):
            return ts

        if isinstance(ts, str):
            try:
                return datetime.fromisoformat(ts.replace("Z", "+00:00"))
            except ValueError:
                return None

        if isinstance(ts, int | float):
            try:
                return datetime.fromtimestamp(ts / 1_000_000)
            except (ValueError, OSError):
                return None

        return None

    def _extract_nested(self, row: dict[str, Any], *keys: str) -> str | None:
        for key in keys:
            value: Any = row
            for part in key.split("."):
                value = value.get(part) if isinstance(value, dict) else None
            if value is not None:
                return str(value)
        return None
