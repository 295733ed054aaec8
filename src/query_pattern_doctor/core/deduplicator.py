import re
from collections.abc import Iterable
from dataclasses import replace
from typing import ClassVar

from query_pattern_doctor.domain import Finding, Severity
from query_pattern_doctor.sql.normalizer import content_hash, fingerprint

_ENTITY_MENTION = re.compile(r"\b(?:entity|class)\s+[\"']?([A-Z]\w+)[\"']?", re.IGNORECASE)
_TABLE_MENTION = re.compile(r"\b(?:table|from|join|on)\s+(?=[\"']?(\w+))", re.IGNORECASE)
_SQL_FROM = re.compile(r"\bFROM\s+[\"`]?(\w+)", re.IGNORECASE)
_REPEAT_COUNT = re.compile(r"(\d+)\s+(?:queries|query|executions|execution|times|time|rows|row)\b", re.IGNORECASE)
_INDEX_TITLE = re.compile(r"\bindex\b", re.IGNORECASE)
_SCAN_TITLE = re.compile(r"\bORDER BY\b|\bfull scan\b", re.IGNORECASE)

_EXCLUDED_ENTITIES = frozenset({"table", "from", "join", "on", "static"})


class FindingDeduplicator:
    """Collapses findings that describe the same underlying problem.

    Findings are grouped by a signature derived from the entity they concern
    and the shape of their title. Within a group the finding with the highest
    priority survives and carries the others in ``suppressed``.
    """

    _kind_priorities: ClassVar[dict[str, int]] = {
        "unsafe_limit_collection_join": 100,
        "repeated_statement": 90,
        "over_eager_join": 75,
        "unused_join": 60,
        "slow_statement": 50,
        "order_by_without_limit": 30,
        "non_sargable_predicate": 20,
    }
    _title_priorities: ClassVar[tuple[tuple[str, int], ...]] = (
        ("Unsafe Limit", 100),
        ("N+1", 90),
        ("Repeated Statement", 90),
        ("Missing Index", 85),
        ("Over-Eager", 75),
        ("Too Many Joins", 75),
        ("Unused Join", 60),
        ("Slow", 50),
        ("ORDER BY", 30),
        ("Full Scan", 20),
    )
    _severity_weights: ClassVar[dict[Severity, int]] = {
        Severity.CRITICAL: 3,
        Severity.WARNING: 2,
        Severity.INFO: 1,
    }

    def deduplicate(self, findings: Iterable[Finding]) -> list[Finding]:
        groups: dict[str, list[Finding]] = {}
        for finding in findings:
            groups.setdefault(self.signature(finding), []).append(finding)

        survivors: list[Finding] = []
        for group in groups.values():
            ranked = sorted(group, key=self._rank, reverse=True)
            survivor, *rest = ranked
            if rest:
                survivor = replace(survivor, suppressed=survivor.suppressed + tuple(rest))
            survivors.append(survivor)

        return sorted(survivors, key=lambda finding: finding.severity, reverse=True)

    def signature(self, finding: Finding) -> str:
        entity = self.entity(finding)

        if entity is not None:
            count = _REPEAT_COUNT.search(finding.title)
            if count is not None:
                return f"repeated:{entity.replace('_', '').lower()}:{count.group(1)}"
            if _INDEX_TITLE.search(finding.title):
                return f"table_performance:{entity.lower()}"
            if _SCAN_TITLE.search(finding.title):
                return f"table_query:{entity.lower()}"

        if finding.evidence_queries:
            return f"sql:{fingerprint(finding.evidence_queries[0].sql)}"

        key = f"{finding.title}:{entity or ''}"
        return f"generic:{content_hash(key)}"

    def entity(self, finding: Finding) -> str | None:
        for text in (finding.title, finding.description):
            match = _ENTITY_MENTION.search(text)
            if match:
                return match.group(1)
        for text in (finding.title, finding.description):
            for match in _TABLE_MENTION.finditer(text):
                candidate = match.group(1)
                if candidate.lower() not in _EXCLUDED_ENTITIES:
                    return candidate
        if finding.evidence_queries:
            match = _SQL_FROM.search(finding.evidence_queries[0].sql)
            if match:
                return match.group(1)
        return None

    def priority(self, finding: Finding) -> int:
        if finding.kind in self._kind_priorities:
            return self._kind_priorities[finding.kind]
        for keyword, weight in self._title_priorities:
            if keyword.lower() in finding.title.lower():
                return weight
        return 0

    def _rank(self, finding: Finding) -> tuple[int, int]:
        return self.priority(finding), self._severity_weights[finding.severity]
