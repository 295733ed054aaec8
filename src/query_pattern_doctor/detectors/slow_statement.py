from collections.abc import Sequence

from query_pattern_doctor.detectors.base import (
    executions_suffix,
    group_by_pattern,
    severity_by_time,
    target_table,
    worst_time_ms,
)
from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier


class SlowStatementDetector:
    name: str = "slow_statement"

    def __init__(self, threshold_ms: float = 100.0) -> None:
        self._threshold_ms = threshold_ms

    async def detect(
        self,
        records: Sequence[QueryRecord],
        extractor: StatementCache,
        classifier: RelationClassifier,
        relations: RelationFacts,
    ) -> list[Finding]:
        findings: list[Finding] = []
        for group in group_by_pattern(records, extractor).values():
            worst = worst_time_ms(group)
            if worst < self._threshold_ms:
                continue

            slowest = max(group, key=lambda record: record.execution_time_ms)
            table = target_table(extractor, slowest.sql)
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Slow Statement: {worst:.0f} ms on table {table}{executions_suffix(len(group))}",
                    description=(
                        f"Slowest execution took {worst:.1f} ms, above the "
                        f"{self._threshold_ms:.0f} ms threshold."
                    ),
                    severity=severity_by_time(worst, critical_ms=1000, warning_ms=500),
                    evidence_queries=(slowest,),
                    trace=slowest.trace,
                    context={
                        "table": table,
                        "worst_time_ms": round(worst, 2),
                        "threshold_ms": self._threshold_ms,
                        "executions": len(group),
                    },
                )
            )
        return findings
