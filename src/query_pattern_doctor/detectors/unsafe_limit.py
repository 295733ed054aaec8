from collections.abc import Sequence

from query_pattern_doctor.detectors.base import executions_suffix, group_by_pattern, target_table
from query_pattern_doctor.domain import Finding, QueryRecord, RelationFacts, Severity
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier


class UnsafeLimitCollectionJoinDetector:
    """A row limit applied across a collection join truncates the collection.

    The limit counts joined rows, not parents, so the last parent silently
    loses part of its children. Always critical.
    """

    name: str = "unsafe_limit_collection_join"

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
            flags = extractor.quick_flags(sql)
            if not (flags.is_select and flags.has_limit and flags.has_join):
                continue

            table = target_table(extractor, sql)
            aliases = extractor.aliases(sql)
            collections = [
                join
                for join in extractor.extract_joins(sql)
                if classifier.is_collection_join(join, table, relations, aliases)
            ]
            if not collections:
                continue

            joined = ", ".join(join.table for join in collections)
            findings.append(
                Finding(
                    kind=self.name,
                    title=(
                        f"Unsafe Limit: row limit across collection join on table {table}"
                        f"{executions_suffix(len(group))}"
                    ),
                    description=(
                        f"LIMIT applies to joined rows, not to {table} rows. "
                        f"Collections loaded through {joined} come back incomplete."
                    ),
                    severity=Severity.CRITICAL,
                    evidence_queries=(group[0],),
                    trace=group[0].trace,
                    context={"table": table, "collection_joins": joined, "executions": len(group)},
                )
            )
        return findings
