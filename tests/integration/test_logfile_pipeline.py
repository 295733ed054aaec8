from pathlib import Path

import pytest

from query_pattern_doctor.core import AnalysisEngine, QueryPipeline
from query_pattern_doctor.domain import AnalysisReport, Severity
from query_pattern_doctor.input import LogFileInput

FIXTURE_PATH = Path(__file__).parent.parent / "fixtures" / "sample_postgres.log"


class CollectingOutput:
    name: str = "collecting"

    def __init__(self) -> None:
        self.reports: list[AnalysisReport] = []

    async def send(self, report: AnalysisReport) -> None:
        self.reports.append(report)


class TestLogFilePipeline:
    @pytest.mark.asyncio
    async def test_reads_every_statement(self) -> None:
        records = [record async for record in LogFileInput(FIXTURE_PATH)]

        assert len(records) == 28
        assert records[1].params == {"$1": "1"}
        assert records[-1].source == "logfile:audit:21835"

    @pytest.mark.asyncio
    async def test_processes_log_file_end_to_end(self) -> None:
        output = CollectingOutput()
        pipeline = QueryPipeline(LogFileInput(FIXTURE_PATH), AnalysisEngine(), [output])

        report = await pipeline.run()

        assert output.reports == [report]
        assert report.record_count == 28
        assert [f.kind for f in report.findings] == [
            "repeated_statement",
            "order_by_without_limit",
            "slow_statement",
        ]
        assert report.severity == Severity.CRITICAL

    @pytest.mark.asyncio
    async def test_n_plus_one_burst_from_prepared_statements(self) -> None:
        report = await QueryPipeline(LogFileInput(FIXTURE_PATH), AnalysisEngine(), []).run()

        burst = report.findings[0]
        assert burst.title == "Repeated Statement: 25 executions on table orders"
        assert burst.severity == Severity.CRITICAL
        assert burst.context["lookup_column"] == "customer_id"

    @pytest.mark.asyncio
    async def test_slow_report_query(self) -> None:
        report = await QueryPipeline(LogFileInput(FIXTURE_PATH), AnalysisEngine(), []).run()

        slow = next(f for f in report.findings if f.kind == "slow_statement")
        assert slow.title == "Slow Statement: 750 ms on table reports"
        assert slow.severity == Severity.WARNING

    @pytest.mark.asyncio
    async def test_cache_holds_one_entry_per_distinct_text(self) -> None:
        report = await QueryPipeline(LogFileInput(FIXTURE_PATH), AnalysisEngine(), []).run()

        assert report.cache_stats is not None
        assert report.cache_stats.entries == 4
        assert report.cache_stats.misses == 4
