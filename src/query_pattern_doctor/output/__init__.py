from query_pattern_doctor.output.base import ReportOutput, SuggestionRenderer
from query_pattern_doctor.output.console import ConsoleReportOutput
from query_pattern_doctor.output.sqs import SqsReportOutput

__all__ = ["ReportOutput", "SuggestionRenderer", "ConsoleReportOutput", "SqsReportOutput"]
