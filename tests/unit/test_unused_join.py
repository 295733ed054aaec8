import pytest

from query_pattern_doctor.detectors import PatternDetector
from query_pattern_doctor.detectors.unused_join import UnusedJoinDetector
from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts, Severity
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier

BASE = "SELECT o.id{columns} FROM orders o JOIN customers c ON c.id = o.customer_id"


async def _detect(*sql: str) -> list[Finding]:
    records = [QueryRecord(sql=statement) for statement in sql]
    return await UnusedJoinDetector().detect(
        records, StatementCache(), RelationClassifier(), RelationFacts()
    )


class TestUnusedJoinDetectorProtocol:
    def test_implements_pattern_detector_protocol(self) -> None:
        assert isinstance(UnusedJoinDetector(), PatternDetector)

    def test_name(self) -> None:
        assert UnusedJoinDetector().name == "unused_join"


class TestUnusedJoins:
    @pytest.mark.asyncio
    async def test_single_unused_join_is_info(self) -> None:
        findings = await _detect(
            "SELECT o.id, c.name FROM orders o "
            "JOIN customers c ON c.id = o.customer_id "
            "JOIN shipments s ON s.order_id = o.id"
        )

        assert len(findings) == 1
        finding = findings[0]
        assert finding.kind == "unused_join"
        assert finding.severity == Severity.INFO
        assert finding.title == "Unused Join: 1 unused join on table orders"
        assert finding.context["unused_joins"] == "shipments s"

    @pytest.mark.asyncio
    async def test_two_unused_joins_is_warning(self) -> None:
        findings = await _detect(
            "SELECT o.id FROM orders o "
            "JOIN customers c ON c.id = o.customer_id "
            "JOIN shipments s ON s.order_id = o.id"
        )

        assert findings[0].severity == Severity.WARNING
        assert findings[0].context["unused_count"] == 2

    @pytest.mark.asyncio
    async def test_three_unused_joins_is_critical(self) -> None:
        findings = await _detect(
            "SELECT o.id FROM orders o "
            "JOIN customers c ON c.id = o.customer_id "
            "JOIN shipments s ON s.order_id = o.id "
            "JOIN payments p ON p.order_id = o.id"
        )

        assert findings[0].severity == Severity.CRITICAL

    @pytest.mark.asyncio
    async def test_repeated_statement_reports_executions(self) -> None:
        sql = BASE.format(columns="")
        findings = await _detect(sql, sql)

        assert len(findings) == 1
        assert findings[0].title.endswith(" (2 executions)")
        assert findings[0].context["executions"] == 2


class TestUsedJoins:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "sql",
        [
            BASE.format(columns=", c.name"),
            BASE.format(columns="") + " WHERE c.active = true",
            BASE.format(columns="") + " ORDER BY c.created_at",
            "SELECT o.id, a.city FROM orders o JOIN customers c ON c.id = o.customer_id "
            "JOIN addresses a ON a.id = c.address_id",
        ],
    )
    async def test_referenced_joins_are_not_reported(self, sql: str) -> None:
        findings = await _detect(sql)
        assert all("customers" not in finding.context["unused_joins"] for finding in findings)

    @pytest.mark.asyncio
    async def test_statement_without_joins(self) -> None:
        assert await _detect("SELECT * FROM orders") == []

    @pytest.mark.asyncio
    async def test_non_select_is_ignored(self) -> None:
        assert await _detect("UPDATE orders SET total = 0") == []

    @pytest.mark.asyncio
    async def test_schema_qualified_join_referenced_by_bare_name(self) -> None:
        findings = await _detect(
            "SELECT o.id, customers.name FROM orders o "
            "JOIN public.customers ON customers.id = o.customer_id"
        )
        assert findings == []

    @pytest.mark.asyncio
    async def test_schema_qualified_join_left_unused(self) -> None:
        findings = await _detect(
            "SELECT o.id FROM orders o JOIN public.customers ON customers.id = o.customer_id"
        )

        assert len(findings) == 1
        assert findings[0].context["unused_joins"] == "public.customers"
