__version__ = "0.1.0"

from query_pattern_doctor.config import AnalysisSettings, get_settings
from query_pattern_doctor.core import AnalysisEngine, FindingDeduplicator, QueryPipeline
from query_pattern_doctor.detectors import DetectorRegistry, PatternDetector, default_registry
from query_pattern_doctor.domain import (
    AnalysisReport,
    Finding,
    QueryRecord,
    RelationFacts,
    Severity,
)
from query_pattern_doctor.input import ManualInput, QueryInput
from query_pattern_doctor.output import ConsoleReportOutput, ReportOutput, SuggestionRenderer
from query_pattern_doctor.relations import RelationFactsProvider, StaticRelationFacts
from query_pattern_doctor.sql.cache import StatementCache

__all__ = [
    "__version__",
    "AnalysisEngine",
    "AnalysisReport",
    "AnalysisSettings",
    "ConsoleReportOutput",
    "DetectorRegistry",
    "Finding",
    "FindingDeduplicator",
    "ManualInput",
    "PatternDetector",
    "QueryInput",
    "QueryPipeline",
    "QueryRecord",
    "RelationFacts",
    "RelationFactsProvider",
    "ReportOutput",
    "Severity",
    "StatementCache",
    "StaticRelationFacts",
    "SuggestionRenderer",
    "default_registry",
    "get_settings",
]
