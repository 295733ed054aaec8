from collections.abc import Sequence
from typing import ClassVar

from query_pattern_doctor.detectors.base import group_by_pattern, severity_by_time, target_table
from query_pattern_doctor.domain import Finding, LookupShape, QueryRecord, RelationFacts, Severity
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier


class RepeatedStatementDetector:
    """Detects bursts of the same statement pattern within one batch.

    A burst whose WHERE clause looks up a single parent or a single row
    (``customer_id = ?`` or ``id = ?``) is the signature of N+1 loading and
    escalates faster than a plain repeat.
    """

    name: str = "repeated_statement"

    _count_thresholds: ClassVar[dict[Severity, int]] = {
        Severity.CRITICAL: 100,
        Severity.WARNING: 20,
    }
    _lookup_thresholds: ClassVar[dict[Severity, int]] = {
        Severity.CRITICAL: 20,
        Severity.WARNING: 10,
    }
    _proxy_weight: ClassVar[float] = 1.3

    def __init__(self, threshold: int = 3) -> None:
        self._threshold = threshold

    async def detect(
        self,
        records: Sequence[QueryRecord],
        extractor: StatementCache,
        classifier: RelationClassifier,
        relations: RelationFacts,
    ) -> list[Finding]:
        findings: list[Finding] = []
        for group in group_by_pattern(records, extractor).values():
            count = len(group)
            if count < self._threshold:
                continue

            sql = group[0].sql
            table = target_table(extractor, sql)
            shape = extractor.lookup_shape(sql)
            total_ms = sum(record.execution_time_ms for record in group)
            severity = max(
                self._severity_by_count(count),
                self._severity_by_shape(count, shape),
                severity_by_time(total_ms, critical_ms=1000, warning_ms=500),
            )

            context: dict[str, str | int | float] = {
                "table": table,
                "executions": count,
                "total_time_ms": round(total_ms, 2),
                "normalized_sql": extractor.normalize(sql).canonical,
            }
            if shape is not None:
                context["lookup_kind"] = shape.kind
                context["lookup_column"] = shape.column
                description = (
                    f"The same lookup on {table}.{shape.column} ran {count} times. "
                    "This is the N+1 pattern: related rows are loaded one parent at a time."
                )
            else:
                description = (
                    f"The same statement ran {count} times in one batch "
                    f"({total_ms:.1f} ms in total)."
                )

            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Repeated Statement: {count} executions on table {table}",
                    description=description,
                    severity=severity,
                    evidence_queries=(group[0],),
                    trace=group[0].trace,
                    context=context,
                )
            )
        return findings

    def _severity_by_count(self, count: int) -> Severity:
        if count > self._count_thresholds[Severity.CRITICAL]:
            return Severity.CRITICAL
        if count > self._count_thresholds[Severity.WARNING]:
            return Severity.WARNING
        return Severity.INFO

    def _severity_by_shape(self, count: int, shape: LookupShape | None) -> Severity:
        if shape is None:
            return Severity.INFO
        adjusted = count * self._proxy_weight if shape.kind == "proxy" else count
        if adjusted >= self._lookup_thresholds[Severity.CRITICAL]:
            return Severity.CRITICAL
        if adjusted >= self._lookup_thresholds[Severity.WARNING]:
            return Severity.WARNING
        return Severity.INFO
