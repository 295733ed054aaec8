from query_pattern_doctor.input.base import QueryInput
from query_pattern_doctor.input.logfile import LogFileInput, PostgresLogLineParser
from query_pattern_doctor.input.manual import ManualInput
from query_pattern_doctor.input.supabase import (
    ParsedStatement,
    PostgresMessageParser,
    SupabaseLogInput,
)

__all__ = [
    "QueryInput",
    "ManualInput",
    "LogFileInput",
    "PostgresLogLineParser",
    "ParsedStatement",
    "PostgresMessageParser",
    "SupabaseLogInput",
]
