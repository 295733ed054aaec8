from query_pattern_doctor.input.supabase.adapter import SupabaseLogInput
from query_pattern_doctor.input.supabase.parser import ParsedStatement, PostgresMessageParser

__all__ = ["SupabaseLogInput", "ParsedStatement", "PostgresMessageParser"]
