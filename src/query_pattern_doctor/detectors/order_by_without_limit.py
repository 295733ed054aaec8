import re
from collections.abc import Sequence

from query_pattern_doctor.detectors.base import (
    group_by_pattern,
    severity_by_time,
    target_table,
    worst_time_ms,
)
from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier
from query_pattern_doctor.sql.normalizer import canonicalize

_OFFSET = re.compile(r"\bOFFSET\b")


class OrderByWithoutLimitDetector:
    name: str = "order_by_without_limit"

    async def detect(
        self,
        records: Sequence[QueryRecord],
        extractor: StatementCache,
        classifier: RelationClassifier,
        relations: RelationFacts,
    ) -> list[Finding]:
        by_clause: dict[str, list[list[QueryRecord]]] = {}
        for group in group_by_pattern(records, extractor).values():
            sql = group[0].sql
            flags = extractor.quick_flags(sql)
            if not flags.is_select or not flags.has_order_by or flags.has_limit:
                continue
            if _OFFSET.search(extractor.normalize(sql).canonical):
                continue
            clause = extractor.order_by(sql)
            if clause is None:
                continue
            by_clause.setdefault(canonicalize(clause), []).append(group)

        findings: list[Finding] = []
        for clause, groups in by_clause.items():
            first = groups[0][0]
            worst = max(worst_time_ms(group) for group in groups)
            table = target_table(extractor, first.sql)
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"ORDER BY Without LIMIT: sorting by {clause} on table {table}",
                    description=(
                        f"The full result of {table} is sorted but never limited. "
                        f"Slowest execution took {worst:.1f} ms."
                    ),
                    severity=severity_by_time(worst, critical_ms=500, warning_ms=100),
                    evidence_queries=tuple(group[0] for group in groups),
                    trace=first.trace,
                    context={
                        "table": table,
                        "order_by": clause,
                        "worst_time_ms": round(worst, 2),
                        "statements": len(groups),
                    },
                )
            )
        return findings
