import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from query_pattern_doctor.input.supabase.parser import ParsedStatement, PostgresMessageParser


@dataclass(frozen=True, slots=True)
class LogLinePrefix:
    timestamp: datetime
    client_addr: str | None
    user_name: str | None
    database_name: str | None
    process_id: int | None
    log_level: str


class PostgresLogLineParser:
    """Parser for PostgreSQL log lines written with the prefix ``%t:%r:%u@%d:[%p]:``.

    Statement lines come from ``log_statement``, ``log_min_duration_statement``
    or pgaudit. A
    ``DETAIL:  parameters:`` line following an ``execute`` line carries its
    bind values.
    """

    LOG_LINE_PATTERN = re.compile(
        r"^(?P<ts>\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})(?:\.\d+)?\s+(?P<tz>\w+)"
        r":(?P<client>[^:]*):"
        r"(?P<conn>[^:]*)"
        r":\[(?P<pid>\d+)\]:\s*"
        r"(?P<level>\w+):\s*"
        r"(?P<message>.*)$"
    )

    USER_DB_PATTERN = re.compile(r"^(?P<user>[^@]+)(?:@(?P<db>.+))?$")
    PARAMETER_PATTERN = re.compile(r"(?P<name>\$\d+)\s*=\s*(?:'(?P<value>(?:[^']|'')*)'|NULL)")

    def __init__(self, message_parser: PostgresMessageParser | None = None) -> None:
        self._message_parser = message_parser or PostgresMessageParser()

    def parse_line(self, line: str) -> ParsedStatement | None:
        """Parse a log line. Returns None if it does not carry a statement."""
        match = self._match(line)
        if match is None:
            return None

        parsed = self._message_parser.parse_message(match.group("message"))
        if parsed is None:
            return None

        prefix = self._parse_prefix(match)
        return replace(
            parsed,
            timestamp=prefix.timestamp,
            user_name=prefix.user_name,
            database_name=prefix.database_name,
            session_id=str(prefix.process_id) if prefix.process_id else None,
        )

    def parse_parameters(self, line: str) -> dict[str, str | None] | None:
        """Parse a ``DETAIL:  parameters: $1 = '...'`` line into a mapping."""
        match = self._match(line)
        if match is None or match.group("level") != "DETAIL":
            return None

        message = match.group("message")
        if not message.startswith("parameters:"):
            return None

        parameters: dict[str, str | None] = {}
        for param in self.PARAMETER_PATTERN.finditer(message):
            value = param.group("value")
            parameters[param.group("name")] = value.replace("''", "'") if value is not None else None
        return parameters

    def _match(self, line: str) -> re.Match[str] | None:
        line = line.strip()
        if not line:
            return None
        return self.LOG_LINE_PATTERN.match(line)

    def _parse_prefix(self, match: re.Match[str]) -> LogLinePrefix:
        timestamp = self._parse_timestamp(match.group("ts"), match.group("tz"))
        client = match.group("client").strip() or None
        user_name, database_name = self._parse_user_db(match.group("conn").strip())
        pid_str = match.group("pid")

        return LogLinePrefix(
            timestamp=timestamp,
            client_addr=client,
            user_name=user_name,
            database_name=database_name,
            process_id=int(pid_str) if pid_str else None,
            log_level=match.group("level"),
        )

    def _parse_timestamp(self, ts_str: str, tz_str: str) -> datetime:
        dt = datetime.strptime(ts_str, "%Y-%m-%d %H:%M:%S")
        if tz_str.upper() == "UTC":
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    def _parse_user_db(self, conn: str) -> tuple[str | None, str | None]:
        if not conn:
            return None, None
        match = self.USER_DB_PATTERN.match(conn)
        if not match:
            return None, None
        return match.group("user") or None, match.group("db") or None
