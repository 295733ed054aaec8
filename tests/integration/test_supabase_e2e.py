"""
End-to-end tests for the Supabase flow with the Management API mocked out.

These tests simulate the full production flow:
1. Fetch postgres_logs rows through SupabaseLogInput
2. Load primary and foreign keys through SupabaseSchemaProvider
3. Analyze the batch with the default detector set
4. Publish the report to an output
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from query_pattern_doctor.core import AnalysisEngine, QueryPipeline
from query_pattern_doctor.domain import AnalysisReport, Severity
from query_pattern_doctor.input.supabase import SupabaseLogInput
from query_pattern_doctor.relations.supabase import SupabaseSchemaProvider

UNSAFE_SQL = "SELECT c.id, o.id FROM customers c JOIN orders o ON o.customer_id = c.id LIMIT 10"

LOG_ROWS = [
    {
        "event_message": f"duration: 0.5{n % 10} ms  execute <unnamed>: SELECT * FROM orders WHERE customer_id = $1",
        "timestamp": f"2025-01-14T12:00:{n:02d}Z",
        "parsed": {"session_id": "67a1b2c3.1f", "user_name": "authenticator"},
    }
    for n in range(30)
] + [
    {
        "event_message": f"duration: 3.2 ms  statement: {UNSAFE_SQL}",
        "timestamp": "2025-01-14T12:00:45Z",
    },
    {
        "event_message": "connection authorized: user=authenticator database=postgres",
        "timestamp": "2025-01-14T12:00:46Z",
    },
]

PRIMARY_ROWS = [
    {"table_name": "customers", "column_name": "id"},
    {"table_name": "orders", "column_name": "id"},
]
FOREIGN_ROWS = [
    {"table_name": "orders", "column_name": "customer_id", "foreign_table_name": "customers"},
]


class CollectingOutput:
    name: str = "collecting"

    def __init__(self) -> None:
        self.reports: list[AnalysisReport] = []

    async def send(self, report: AnalysisReport) -> None:
        self.reports.append(report)


def _client() -> MagicMock:
    async def run_query(project_ref: str, sql: str) -> list[dict]:
        return PRIMARY_ROWS if "PRIMARY KEY" in sql else FOREIGN_ROWS

    client = MagicMock()
    client.query_logs = AsyncMock(return_value=LOG_ROWS)
    client.run_query = AsyncMock(side_effect=run_query)
    return client


class TestSupabaseEndToEnd:
    @pytest.mark.asyncio
    async def test_full_flow(self) -> None:
        client = _client()
        output = CollectingOutput()
        pipeline = QueryPipeline(
            SupabaseLogInput(client, project_ref="abcdefgh"),
            AnalysisEngine(),
            [output],
            relations_provider=SupabaseSchemaProvider(client, project_ref="abcdefgh"),
        )

        report = await pipeline.run()

        assert report.record_count == 31
        assert output.reports == [report]
        assert report.severity == Severity.CRITICAL
        assert [f.kind for f in report.findings] == [
            "unsafe_limit_collection_join",
            "repeated_statement",
        ]

    @pytest.mark.asyncio
    async def test_burst_details(self) -> None:
        client = _client()
        pipeline = QueryPipeline(
            SupabaseLogInput(client, project_ref="abcdefgh"),
            AnalysisEngine(),
            [],
            relations_provider=SupabaseSchemaProvider(client, project_ref="abcdefgh"),
        )

        report = await pipeline.run()

        burst = next(f for f in report.findings if f.kind == "repeated_statement")
        assert burst.title == "Repeated Statement: 30 executions on table orders"
        assert burst.severity == Severity.CRITICAL
        assert burst.evidence_queries[0].source == "supabase:duration:67a1b2c3.1f"

    @pytest.mark.asyncio
    async def test_from_log_rows_without_schema(self) -> None:
        input_source = SupabaseLogInput.from_log_rows(LOG_ROWS)

        report = await QueryPipeline(input_source, AnalysisEngine(), []).run()

        assert report.record_count == 31
        assert {f.kind for f in report.findings} == {
            "unsafe_limit_collection_join",
            "repeated_statement",
        }
