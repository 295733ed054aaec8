import re
from collections.abc import Sequence

from query_pattern_doctor.detectors.base import group_by_pattern, target_table, worst_time_ms
from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts, Severity
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier

_BOUND_LIKE = re.compile(r"\bI?LIKE \?")


class NonSargablePredicateDetector:
    """Finds WHERE predicates that cannot use an index on the column.

    Two shapes are recognized: a LIKE pattern with a leading wildcard, either
    inline or bound as a parameter, and a column wrapped in a function call
    such as ``LOWER(email) = ?``.
    """

    name: str = "non_sargable_predicate"

    def __init__(self, slow_ms: float = 100.0) -> None:
        self._slow_ms = slow_ms

    async def detect(
        self,
        records: Sequence[QueryRecord],
        extractor: StatementCache,
        classifier: RelationClassifier,
        relations: RelationFacts,
    ) -> list[Finding]:
        findings: list[Finding] = []
        for group in group_by_pattern(records, extractor).values():
            sql = group[0].sql
            reasons: list[str] = []
            if extractor.has_leading_wildcard_like(sql) or self._binds_leading_wildcard(
                group, extractor.normalize(sql).canonical
            ):
                reasons.append("LIKE with a leading wildcard")
            wrapped = extractor.wrapped_where_columns(sql)
            if wrapped:
                reasons.append("function applied to " + ", ".join(wrapped))
            if not reasons:
                continue

            table = target_table(extractor, sql)
            worst = worst_time_ms(group)
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Full Scan Risk: non-sargable predicate on table {table}",
                    description=(
                        f"The WHERE clause uses {' and '.join(reasons)}. "
                        "An index on the column cannot serve this predicate."
                    ),
                    severity=Severity.WARNING if worst > self._slow_ms else Severity.INFO,
                    evidence_queries=(group[0],),
                    trace=group[0].trace,
                    context={
                        "table": table,
                        "wrapped_columns": ", ".join(wrapped),
                        "worst_time_ms": round(worst, 2),
                    },
                )
            )
        return findings

    def _binds_leading_wildcard(self, group: list[QueryRecord], canonical: str) -> bool:
        if not _BOUND_LIKE.search(canonical):
            return False
        return any(
            isinstance(value, str) and value.startswith("%")
            for record in group
            for value in record.params.values()
        )
