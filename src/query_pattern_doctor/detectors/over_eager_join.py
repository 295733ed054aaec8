from collections.abc import Sequence

from query_pattern_doctor.detectors.base import executions_suffix, group_by_pattern, target_table
from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts, Severity
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier


class OverEagerJoinDetector:
    """Flags statements that fetch several collections through joins at once.

    Each collection join multiplies the row count of the result, so two or
    more of them produce a cartesian product. Without relation facts the raw
    join count is used instead.
    """

    name: str = "over_eager_join"

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
            if relations.is_empty:
                finding = self._by_join_count(group, extractor)
            else:
                finding = self._by_collections(group, extractor, classifier, relations)
            if finding is not None:
                findings.append(finding)
        return findings

    def _by_collections(
        self,
        group: list[QueryRecord],
        extractor: StatementCache,
        classifier: RelationClassifier,
        relations: RelationFacts,
    ) -> Finding | None:
        sql = group[0].sql
        table = target_table(extractor, sql)
        aliases = extractor.aliases(sql)
        collections = [
            join
            for join in extractor.extract_joins(sql)
            if classifier.is_collection_join(join, table, relations, aliases)
        ]
        count = len(collections)
        if count < 2:
            return None

        severity = Severity.CRITICAL if count >= 3 else Severity.WARNING
        joined = ", ".join(join.table for join in collections)
        return Finding(
            kind=self.name,
            title=f"Over-Eager Loading: {count} collection joins on table {table}{executions_suffix(len(group))}",
            description=(
                f"The statement joins {count} collections ({joined}) in one result set. "
                "Rows multiply per collection, so the result grows as a cartesian product."
            ),
            severity=severity,
            evidence_queries=(group[0],),
            trace=group[0].trace,
            context={
                "table": table,
                "collection_joins": joined,
                "collection_count": count,
                "executions": len(group),
            },
        )

    def _by_join_count(self, group: list[QueryRecord], extractor: StatementCache) -> Finding | None:
        sql = group[0].sql
        count = extractor.count_joins(sql)
        if count < 3:
            return None

        if count >= 5:
            severity = Severity.CRITICAL
        elif count == 4:
            severity = Severity.WARNING
        else:
            severity = Severity.INFO
        table = target_table(extractor, sql)
        return Finding(
            kind=self.name,
            title=f"Too Many Joins: {count} joins on table {table}{executions_suffix(len(group))}",
            description=(
                f"The statement joins {count} tables. Without relation metadata the joins "
                "cannot be classified, but this many usually means collections are loaded eagerly."
            ),
            severity=severity,
            evidence_queries=(group[0],),
            trace=group[0].trace,
            context={"table": table, "join_count": count, "executions": len(group)},
        )
