"""Core domain models for statement pattern analysis."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, StrEnum
from typing import Any

from query_pattern_doctor.sql.normalizer import fingerprint


class Severity(IntEnum):
    """Finding severity levels, ordered for comparison (higher value = higher severity)."""

    INFO = 1
    WARNING = 2
    CRITICAL = 3


class JoinType(StrEnum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"


class Cardinality(StrEnum):
    ONE_TO_ONE = "one_to_one"
    MANY_TO_ONE = "many_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"

    @property
    def is_collection(self) -> bool:
        return self in (Cardinality.ONE_TO_MANY, Cardinality.MANY_TO_MANY)


@dataclass(frozen=True, slots=True)
class TraceFrame:
    """One call-site frame captured alongside a statement."""

    file: str
    line: int | None = None
    function: str | None = None


@dataclass(frozen=True, slots=True)
class QueryRecord:
    """A single executed statement with its execution metadata."""

    sql: str
    params: Mapping[str, Any] = field(default_factory=dict)
    execution_time_ms: float = 0.0
    row_count: int | None = None
    trace: tuple[TraceFrame, ...] | None = None
    timestamp: datetime | None = None
    source: str | None = None


@dataclass(frozen=True, slots=True)
class NormalizedSql:
    canonical: str
    hash: str


@dataclass(frozen=True, slots=True)
class QuickFlags:
    has_join: bool
    has_order_by: bool
    has_limit: bool
    is_select: bool
    has_group_by: bool


@dataclass(frozen=True, slots=True)
class TableRef:
    table: str
    alias: str | None = None

    @property
    def reference(self) -> str:
        """Name used to qualify columns of this table in the statement."""
        return self.alias or self.table


@dataclass(frozen=True, slots=True)
class JoinDescriptor:
    """One JOIN clause found in a statement.

    ``conditions`` holds every ``left = right`` column pair of the ON clause
    in textual order; ``on_left``/``on_right`` mirror the first pair.
    ``clause`` is the raw JOIN text and is what alias-usage checks exclude.
    """

    join_type: JoinType
    table: str
    alias: str | None = None
    on_left: str = ""
    on_right: str = ""
    conditions: tuple[tuple[str, str], ...] = ()
    on_clause: str = ""
    clause: str = ""

    @property
    def reference(self) -> str:
        return self.alias or self.table


@dataclass(frozen=True, slots=True)
class LookupShape:
    """WHERE-clause shape of a single-row or single-parent lookup.

    ``kind`` is ``"proxy"`` for primary key lookups (``WHERE id = ?``) and
    ``"collection"`` for foreign key lookups (``WHERE customer_id = ?``).
    """

    kind: str
    table: str
    column: str


@dataclass(frozen=True, slots=True)
class TableFacts:
    table: str
    primary_key_columns: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class Association:
    target_table: str
    cardinality: Cardinality


def _table_key(name: str) -> str:
    return name.strip('"`[]').lower()


@dataclass(frozen=True, slots=True)
class RelationFacts:
    """Primary key and association facts supplied by a metadata provider.

    ``associations`` is keyed by ``(owning_table, field)``.
    """

    tables: Mapping[str, TableFacts] = field(default_factory=dict)
    associations: Mapping[tuple[str, str], Association] = field(default_factory=dict)

    @classmethod
    def from_tables(
        cls,
        tables: list[TableFacts],
        associations: Mapping[tuple[str, str], Association] | None = None,
    ) -> "RelationFacts":
        return cls(
            tables={_table_key(t.table): t for t in tables},
            associations={
                (_table_key(owner), name): assoc
                for (owner, name), assoc in (associations or {}).items()
            },
        )

    @property
    def is_empty(self) -> bool:
        return not self.tables and not self.associations

    def table(self, name: str) -> TableFacts | None:
        """Look up facts for a table, tolerating quoting, case and schema prefixes."""
        key = _table_key(name)
        facts = self.tables.get(key)
        if facts is None and "." in key:
            facts = self.tables.get(key.rsplit(".", 1)[1])
        return facts

    def associations_targeting(
        self, table: str, owner: str | None = None
    ) -> list[Association]:
        target = _table_key(table).rsplit(".", 1)[-1]
        owner_key = _table_key(owner).rsplit(".", 1)[-1] if owner else None
        matches: list[Association] = []
        for (owning_table, _name), association in self.associations.items():
            if _table_key(association.target_table).rsplit(".", 1)[-1] != target:
                continue
            if owner_key is not None and owning_table.rsplit(".", 1)[-1] != owner_key:
                continue
            matches.append(association)
        return matches


@dataclass(frozen=True, slots=True)
class Suggestion:
    """Remediation text produced by an external renderer."""

    code: str
    description: str


@dataclass(frozen=True, slots=True)
class Finding:
    """One structural issue emitted by a detector.

    Evidence statements sharing a normalized pattern are collapsed on
    construction, keeping the first occurrence.
    """

    kind: str
    title: str
    description: str
    severity: Severity
    evidence_queries: tuple[QueryRecord, ...] = ()
    trace: tuple[TraceFrame, ...] | None = None
    suppressed: tuple["Finding", ...] = ()
    context: Mapping[str, str | int | float] = field(default_factory=dict)
    suggestion: Suggestion | None = None

    def __post_init__(self) -> None:
        if len(self.evidence_queries) < 2:
            object.__setattr__(self, "evidence_queries", tuple(self.evidence_queries))
            return
        keys: dict[str, str] = {}
        seen: set[str] = set()
        unique: list[QueryRecord] = []
        for record in self.evidence_queries:
            if record.sql not in keys:
                keys[record.sql] = fingerprint(record.sql)
            key = keys[record.sql]
            if key in seen:
                continue
            seen.add(key)
            unique.append(record)
        object.__setattr__(self, "evidence_queries", tuple(unique))


@dataclass(frozen=True, slots=True)
class DetectorFailure:
    detector_name: str
    error: str


@dataclass(frozen=True, slots=True)
class CacheStats:
    hits: int
    misses: int
    hit_rate: float
    entries: int


@dataclass(frozen=True, slots=True)
class AnalysisReport:
    """Outcome of analyzing one batch of statements."""

    findings: tuple[Finding, ...] = ()
    record_count: int = 0
    failures: tuple[DetectorFailure, ...] = ()
    cache_stats: CacheStats | None = None
    warm_up_ms: float = 0.0
    detection_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def severity(self) -> Severity:
        """Return the highest severity among all findings."""
        if not self.findings:
            return Severity.INFO
        return max(finding.severity for finding in self.findings)
