"""Domain models for statement pattern analysis."""

from query_pattern_doctor.domain.models import (
    AnalysisReport,
    Association,
    CacheStats,
    Cardinality,
    DetectorFailure,
    Finding,
    JoinDescriptor,
    JoinType,
    LookupShape,
    NormalizedSql,
    QueryRecord,
    QuickFlags,
    RelationFacts,
    Severity,
    Suggestion,
    TableFacts,
    TableRef,
    TraceFrame,
)

__all__ = [
    "AnalysisReport",
    "Association",
    "CacheStats",
    "Cardinality",
    "DetectorFailure",
    "Finding",
    "JoinDescriptor",
    "JoinType",
    "LookupShape",
    "NormalizedSql",
    "QueryRecord",
    "QuickFlags",
    "RelationFacts",
    "Severity",
    "Suggestion",
    "TableFacts",
    "TableRef",
    "TraceFrame",
]
