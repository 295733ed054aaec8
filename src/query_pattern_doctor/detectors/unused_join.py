from collections.abc import Sequence

from query_pattern_doctor.detectors.base import executions_suffix, group_by_pattern, target_table
from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts, Severity
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier


class UnusedJoinDetector:
    name: str = "unused_join"

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
            if not extractor.is_select(sql):
                continue
            unused = [
                join
                for join in extractor.extract_joins(sql)
                if not extractor.alias_used_elsewhere(sql, join.reference, join.clause)
            ]
            if not unused:
                continue

            count = len(unused)
            if count >= 3:
                severity = Severity.CRITICAL
            elif count == 2:
                severity = Severity.WARNING
            else:
                severity = Severity.INFO

            table = target_table(extractor, sql)
            names = ", ".join(
                f"{join.table} {join.alias}" if join.alias else join.table for join in unused
            )
            noun = "join" if count == 1 else "joins"
            findings.append(
                Finding(
                    kind=self.name,
                    title=f"Unused Join: {count} unused {noun} on table {table}{executions_suffix(len(group))}",
                    description=(
                        f"Joined but never referenced outside their own join clause: {names}. "
                        "The join widens every row without contributing a column or filter."
                    ),
                    severity=severity,
                    evidence_queries=(group[0],),
                    trace=group[0].trace,
                    context={
                        "table": table,
                        "unused_joins": names,
                        "unused_count": count,
                        "executions": len(group),
                    },
                )
            )
        return findings
