from query_pattern_doctor.core.deduplicator import FindingDeduplicator
from query_pattern_doctor.core.engine import AnalysisEngine
from query_pattern_doctor.core.pipeline import QueryPipeline

__all__ = [
    "AnalysisEngine",
    "FindingDeduplicator",
    "QueryPipeline",
]
