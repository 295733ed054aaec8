import asyncio
import logging
import time
from collections.abc import Sequence

from query_pattern_doctor.config import AnalysisSettings
from query_pattern_doctor.core.deduplicator import FindingDeduplicator
from query_pattern_doctor.detectors import DetectorRegistry, PatternDetector, default_registry
from query_pattern_doctor.domain import (
    AnalysisReport,
    CacheStats,
    DetectorFailure,
    Finding,
    QueryRecord,
    RelationFacts,
)
from query_pattern_doctor.sql.cache import StatementCache
from query_pattern_doctor.sql.classifier import RelationClassifier

logger = logging.getLogger(__name__)


class AnalysisEngine:
    """Runs pattern detectors over a batch of executed statements.

    Analysis happens in two phases: ``warm_up`` fills the statement cache
    once per distinct text, and ``run`` hands the batch to every detector
    concurrently before deduplicating and ranking their findings. The cache
    outlives a batch; pass the same one to several engines to share it.
    """

    def __init__(
        self,
        cache: StatementCache | None = None,
        registry: DetectorRegistry | None = None,
        deduplicator: FindingDeduplicator | None = None,
        classifier: RelationClassifier | None = None,
        settings: AnalysisSettings | None = None,
    ) -> None:
        self._cache = cache if cache is not None else StatementCache()
        self._registry = registry if registry is not None else default_registry(settings)
        self._deduplicator = deduplicator if deduplicator is not None else FindingDeduplicator()
        self._classifier = classifier if classifier is not None else RelationClassifier()

    @property
    def registry(self) -> DetectorRegistry:
        return self._registry

    @property
    def cache(self) -> StatementCache:
        return self._cache

    def warm_up(self, records: Sequence[QueryRecord]) -> None:
        self._cache.warm_up(records)

    async def run(
        self,
        records: Sequence[QueryRecord],
        relations: RelationFacts | None = None,
        detectors: Sequence[PatternDetector] | None = None,
    ) -> list[Finding]:
        """Run the detectors and return deduplicated findings, most severe first.

        A detector that raises is logged and skipped without affecting the
        others; ``analyze`` also lists it in the report failures.
        """
        findings, _failures = await self._detect(records, relations, detectors)
        return findings

    async def _detect(
        self,
        records: Sequence[QueryRecord],
        relations: RelationFacts | None,
        detectors: Sequence[PatternDetector] | None,
    ) -> tuple[list[Finding], tuple[DetectorFailure, ...]]:
        if not records:
            return [], ()

        relations = relations or RelationFacts()
        active = tuple(detectors) if detectors is not None else self._registry.detectors
        results = await asyncio.gather(
            *(
                detector.detect(records, self._cache, self._classifier, relations)
                for detector in active
            ),
            return_exceptions=True,
        )

        findings: list[Finding] = []
        failures: list[DetectorFailure] = []
        for detector, result in zip(active, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.exception("Detector %s failed", detector.name, exc_info=result)
                failures.append(DetectorFailure(detector_name=detector.name, error=repr(result)))
                continue
            findings.extend(result)

        return self._deduplicator.deduplicate(findings), tuple(failures)

    async def analyze(
        self,
        records: Sequence[QueryRecord],
        relations: RelationFacts | None = None,
        detectors: Sequence[PatternDetector] | None = None,
    ) -> AnalysisReport:
        started = time.perf_counter()
        self.warm_up(records)
        warmed = time.perf_counter()
        findings, failures = await self._detect(records, relations, detectors)
        finished = time.perf_counter()

        warm_up_ms = (warmed - started) * 1000
        detection_ms = (finished - warmed) * 1000
        logger.debug(
            "Analyzed %d statements: warm-up %.2f ms, detection %.2f ms, %d findings",
            len(records),
            warm_up_ms,
            detection_ms,
            len(findings),
        )
        return AnalysisReport(
            findings=tuple(findings),
            record_count=len(records),
            failures=failures,
            cache_stats=self._cache.stats(),
            warm_up_ms=warm_up_ms,
            detection_ms=detection_ms,
        )

    def clear_caches(self) -> None:
        self._cache.clear()

    def stats(self) -> CacheStats:
        return self._cache.stats()
