from query_pattern_doctor.domain import AnalysisReport, Finding


class ConsoleReportOutput:
    """Console output adapter for analysis reports."""

    def __init__(self, prefix: str = "[QUERY]", preview_length: int = 80) -> None:
        self._prefix = prefix
        self._preview_length = preview_length

    @property
    def name(self) -> str:
        return "console"

    async def send(self, report: AnalysisReport) -> None:
        print(
            f"{self._prefix} [{report.severity.name}] {report.record_count} statement(s) - "
            f"{len(report.findings)} finding(s)"
        )
        for finding in report.findings:
            self._print_finding(finding)
        for failure in report.failures:
            print(f"  ! {failure.detector_name} failed: {failure.error}")

    def _print_finding(self, finding: Finding) -> None:
        print(f"  - [{finding.severity.name}] {finding.kind}: {finding.title}")
        if finding.evidence_queries:
            print(f"      {self._preview(finding.evidence_queries[0].sql)}")
        if finding.suppressed:
            kinds = ", ".join(suppressed.kind for suppressed in finding.suppressed)
            print(f"      also covers: {kinds}")
        if finding.suggestion is not None:
            print(f"      suggestion: {finding.suggestion.description}")

    def _preview(self, sql: str) -> str:
        flat = " ".join(sql.split())
        if len(flat) > self._preview_length:
            return flat[: self._preview_length] + "..."
        return flat
