import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from query_pattern_doctor.domain.models import (
    CacheStats,
    JoinDescriptor,
    LookupShape,
    NormalizedSql,
    QueryRecord,
    QuickFlags,
    TableRef,
)
from query_pattern_doctor.sql.extractor import SqlStructureExtractor, StatementStructure
from query_pattern_doctor.sql.normalizer import canonicalize, content_hash

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _StatementEntry:
    normalized: NormalizedSql
    structure: StatementStructure
    alias_usage: dict[tuple[str, str], bool] = field(default_factory=dict)


class StatementCache:
    """Memoizes normalization and structural extraction per statement text.

    Entries are keyed by the md5 of the raw text and built in one go on the
    first request, so each distinct text costs exactly one miss. The cache is
    meant to live for the whole process and be shared between batches.
    """

    def __init__(self, extractor: SqlStructureExtractor | None = None) -> None:
        self._extractor = extractor or SqlStructureExtractor()
        self._entries: dict[str, _StatementEntry] = {}
        self._hits = 0
        self._misses = 0

    def warm_up(self, records: Iterable[QueryRecord]) -> int:
        """Populate entries for every distinct statement text.

        Returns the number of distinct texts seen.
        """
        unique: dict[str, str] = {}
        for record in records:
            unique.setdefault(content_hash(record.sql), record.sql)
        for sql in unique.values():
            self._entry(sql)
        logger.debug("Warmed statement cache with %d distinct statements", len(unique))
        return len(unique)

    def normalize(self, sql: str) -> NormalizedSql:
        return self._entry(sql).normalized

    def quick_flags(self, sql: str) -> QuickFlags:
        return self._entry(sql).structure.flags

    def extract_joins(self, sql: str) -> tuple[JoinDescriptor, ...]:
        return self._entry(sql).structure.joins

    def main_table(self, sql: str) -> TableRef | None:
        return self._entry(sql).structure.main_table

    def count_joins(self, sql: str) -> int:
        return self._entry(sql).structure.join_count

    def is_select(self, sql: str) -> bool:
        return self._entry(sql).structure.flags.is_select

    def lookup_shape(self, sql: str) -> LookupShape | None:
        return self._entry(sql).structure.lookup_shape

    def aliases(self, sql: str) -> Mapping[str, str]:
        return self._entry(sql).structure.aliases

    def order_by(self, sql: str) -> str | None:
        return self._entry(sql).structure.order_by

    def has_leading_wildcard_like(self, sql: str) -> bool:
        return self._entry(sql).structure.leading_wildcard_like

    def wrapped_where_columns(self, sql: str) -> tuple[str, ...]:
        return self._entry(sql).structure.wrapped_where_columns

    def alias_used_elsewhere(self, sql: str, alias: str, excluding_clause: str = "") -> bool:
        entry = self._entry(sql)
        key = (alias.lower(), excluding_clause)
        cached = entry.alias_usage.get(key)
        if cached is None:
            cached = entry.alias_usage.setdefault(
                key, self._extractor.alias_used_elsewhere(sql, alias, excluding_clause)
            )
        return cached

    def stats(self) -> CacheStats:
        total = self._hits + self._misses
        hit_rate = round(self._hits / total * 100, 2) if total else 0.0
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            hit_rate=hit_rate,
            entries=len(self._entries),
        )

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _entry(self, sql: str) -> _StatementEntry:
        key = content_hash(sql)
        entry = self._entries.get(key)
        if entry is not None:
            self._hits += 1
            return entry

        self._misses += 1
        canonical = canonicalize(sql)
        entry = _StatementEntry(
            normalized=NormalizedSql(canonical=canonical, hash=content_hash(canonical)),
            structure=self._extractor.describe(sql),
        )
        return self._entries.setdefault(key, entry)
