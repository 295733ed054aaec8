from query_pattern_doctor.config import AnalysisSettings
from query_pattern_doctor.detectors.base import PatternDetector
from query_pattern_doctor.detectors.non_sargable import NonSargablePredicateDetector
from query_pattern_doctor.detectors.order_by_without_limit import OrderByWithoutLimitDetector
from query_pattern_doctor.detectors.over_eager_join import OverEagerJoinDetector
from query_pattern_doctor.detectors.repeated_statement import RepeatedStatementDetector
from query_pattern_doctor.detectors.slow_statement import SlowStatementDetector
from query_pattern_doctor.detectors.unsafe_limit import UnsafeLimitCollectionJoinDetector
from query_pattern_doctor.detectors.unused_join import UnusedJoinDetector


class DetectorRegistry:
    """Registry for managing the set of pattern detectors run per batch."""

    def __init__(self) -> None:
        self._detectors: list[PatternDetector] = []

    def register(self, detector: PatternDetector) -> None:
        if self.get(detector.name) is not None:
            raise ValueError(f"Detector already registered: {detector.name}")
        self._detectors.append(detector)

    def unregister(self, name: str) -> None:
        self._detectors = [d for d in self._detectors if d.name != name]

    def get(self, name: str) -> PatternDetector | None:
        for detector in self._detectors:
            if detector.name == name:
                return detector
        return None

    @property
    def detectors(self) -> tuple[PatternDetector, ...]:
        return tuple(self._detectors)

    def __len__(self) -> int:
        return len(self._detectors)


def default_registry(settings: AnalysisSettings | None = None) -> DetectorRegistry:
    """Build a registry with every built-in detector, minus the disabled ones."""
    settings = settings or AnalysisSettings()
    registry = DetectorRegistry()
    detectors: list[PatternDetector] = [
        UnsafeLimitCollectionJoinDetector(),
        RepeatedStatementDetector(threshold=settings.burst_threshold),
        OverEagerJoinDetector(),
        UnusedJoinDetector(),
        SlowStatementDetector(threshold_ms=settings.slow_threshold_ms),
        OrderByWithoutLimitDetector(),
        NonSargablePredicateDetector(slow_ms=settings.slow_threshold_ms),
    ]
    disabled = set(settings.disabled_detectors)
    for detector in detectors:
        if detector.name not in disabled:
            registry.register(detector)
    return registry
