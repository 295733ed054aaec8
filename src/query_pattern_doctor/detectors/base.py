from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts, Severity
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier


@runtime_checkable
class PatternDetector(Protocol):
    """Protocol for statement pattern detectors."""

    @property
    def name(self) -> str:
        ...

    async def detect(
        self,
        records: Sequence[QueryRecord],
        extractor: StatementCache,
        classifier: RelationClassifier,
        relations: RelationFacts,
    ) -> list[Finding]:
        ...


def group_by_pattern(
    records: Sequence[QueryRecord], extractor: StatementCache
) -> dict[str, list[QueryRecord]]:
    """Group records by normalized hash, keeping first-seen order."""
    groups: dict[str, list[QueryRecord]] = {}
    for record in records:
        groups.setdefault(extractor.normalize(record.sql).hash, []).append(record)
    return groups


def target_table(extractor: StatementCache, sql: str) -> str:
    main = extractor.main_table(sql)
    if main is not None:
        return main.table
    joins = extractor.extract_joins(sql)
    return joins[0].table if joins else "unknown"


def executions_suffix(count: int) -> str:
    return f" ({count} executions)" if count > 1 else ""


def worst_time_ms(records: Sequence[QueryRecord]) -> float:
    return max((record.execution_time_ms for record in records), default=0.0)


def severity_by_time(elapsed_ms: float, critical_ms: float, warning_ms: float) -> Severity:
    if elapsed_ms > critical_ms:
        return Severity.CRITICAL
    if elapsed_ms > warning_ms:
        return Severity.WARNING
    return Severity.INFO
