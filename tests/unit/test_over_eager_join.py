import pytest

from query_pattern_doctor.detectors.over_eager_join import OverEagerJoinDetector
from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts, Severity, TableFacts
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier

CUSTOMER_COLLECTIONS = (
    "SELECT c.id, o.id, a.id{extra_columns} FROM customers c "
    "JOIN orders o ON o.customer_id = c.id "
    "JOIN addresses a ON a.customer_id = c.id{extra_joins}"
)


def _keyed() -> RelationFacts:
    return RelationFacts.from_tables(
        [
            TableFacts(table=table, primary_key_columns=frozenset({"id"}))
            for table in ("customers", "orders", "addresses", "tickets")
        ]
    )


async def _detect(sql: str, relations: RelationFacts, executions: int = 1) -> list[Finding]:
    records = [QueryRecord(sql=sql)] * executions
    return await OverEagerJoinDetector().detect(
        records, StatementCache(), RelationClassifier(), relations
    )


class TestWithRelationFacts:
    @pytest.mark.asyncio
    async def test_two_collection_joins_is_warning(self) -> None:
        sql = CUSTOMER_COLLECTIONS.format(extra_columns="", extra_joins="")
        findings = await _detect(sql, _keyed())

        assert len(findings) == 1
        assert findings[0].severity == Severity.WARNING
        assert findings[0].title == "Over-Eager Loading: 2 collection joins on table customers"
        assert findings[0].context["collection_joins"] == "orders, addresses"

    @pytest.mark.asyncio
    async def test_three_collection_joins_is_critical(self) -> None:
        sql = CUSTOMER_COLLECTIONS.format(
            extra_columns=", t.id", extra_joins=" JOIN tickets t ON t.customer_id = c.id"
        )
        findings = await _detect(sql, _keyed(), executions=4)

        assert findings[0].severity == Severity.CRITICAL
        assert findings[0].title.endswith("on table customers (4 executions)")

    @pytest.mark.asyncio
    async def test_single_collection_join_is_fine(self) -> None:
        sql = (
            "SELECT o.id, c.name, i.sku FROM orders o "
            "JOIN customers c ON c.id = o.customer_id "
            "JOIN order_items i ON i.order_id = o.id"
        )
        assert await _detect(sql, _keyed()) == []


class TestWithoutRelationFacts:
    @staticmethod
    def _chain(joins: int) -> str:
        clauses = " ".join(f"JOIN t{n} ON t{n}.id = o.t{n}_id" for n in range(1, joins + 1))
        return f"SELECT * FROM orders o {clauses}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "joins,severity",
        [(3, Severity.INFO), (4, Severity.WARNING), (5, Severity.CRITICAL), (7, Severity.CRITICAL)],
    )
    async def test_join_count_escalation(self, joins: int, severity: Severity) -> None:
        findings = await _detect(self._chain(joins), RelationFacts())

        assert len(findings) == 1
        assert findings[0].severity == severity
        assert findings[0].title == f"Too Many Joins: {joins} joins on table orders"

    @pytest.mark.asyncio
    async def test_two_joins_is_fine(self) -> None:
        assert await _detect(self._chain(2), RelationFacts()) == []
