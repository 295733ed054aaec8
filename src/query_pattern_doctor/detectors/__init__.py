from query_pattern_doctor.detectors.base import PatternDetector
from query_pattern_doctor.detectors.non_sargable import NonSargablePredicateDetector
from query_pattern_doctor.detectors.order_by_without_limit import OrderByWithoutLimitDetector
from query_pattern_doctor.detectors.over_eager_join import OverEagerJoinDetector
from query_pattern_doctor.detectors.registry import DetectorRegistry, default_registry
from query_pattern_doctor.detectors.repeated_statement import RepeatedStatementDetector
from query_pattern_doctor.detectors.slow_statement import SlowStatementDetector
from query_pattern_doctor.detectors.unsafe_limit import UnsafeLimitCollectionJoinDetector
from query_pattern_doctor.detectors.unused_join import UnusedJoinDetector

__all__ = [
    "DetectorRegistry",
    "NonSargablePredicateDetector",
    "OrderByWithoutLimitDetector",
    "OverEagerJoinDetector",
    "PatternDetector",
    "RepeatedStatementDetector",
    "SlowStatementDetector",
    "UnsafeLimitCollectionJoinDetector",
    "UnusedJoinDetector",
    "default_registry",
]
