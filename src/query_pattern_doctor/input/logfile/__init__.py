from query_pattern_doctor.input.logfile.adapter import LogFileInput
from query_pattern_doctor.input.logfile.parser import PostgresLogLineParser

__all__ = ["LogFileInput", "PostgresLogLineParser"]
