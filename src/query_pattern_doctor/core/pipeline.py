import logging
from collections.abc import Sequence
from dataclasses import replace

from query_pattern_doctor.core.engine import AnalysisEngine
from query_pattern_doctor.domain import AnalysisReport, Finding, QueryRecord, RelationFacts
from query_pattern_doctor.input import QueryInput
from query_pattern_doctor.output import ReportOutput, SuggestionRenderer
from query_pattern_doctor.relations import RelationFactsProvider

logger = logging.getLogger(__name__)


class QueryPipeline:
    """Drains one batch from an input, analyzes it and publishes the report."""

    def __init__(
        self,
        input_source: QueryInput,
        engine: AnalysisEngine,
        outputs: Sequence[ReportOutput],
        relations_provider: RelationFactsProvider | None = None,
        renderer: SuggestionRenderer | None = None,
    ) -> None:
        self._input = input_source
        self._engine = engine
        self._outputs = tuple(outputs)
        self._relations_provider = relations_provider
        self._renderer = renderer

    async def run(self) -> AnalysisReport:
        records: list[QueryRecord] = [record async for record in self._input]
        relations = await self._fetch_relations()

        report = await self._engine.analyze(records, relations)
        renderer = self._renderer
        if renderer is not None and report.findings:
            findings = tuple(self._render(renderer, finding) for finding in report.findings)
            report = replace(report, findings=findings)
        logger.info(
            "Analyzed batch of %d statements: %d findings, %d detector failures",
            report.record_count,
            len(report.findings),
            len(report.failures),
        )

        if report.findings:
            for output in self._outputs:
                await output.send(report)
        return report

    async def _fetch_relations(self) -> RelationFacts:
        if self._relations_provider is None:
            return RelationFacts()
        return await self._relations_provider.fetch_relations()

    def _render(self, renderer: SuggestionRenderer, finding: Finding) -> Finding:
        try:
            suggestion = renderer.render(finding.kind, finding.context)
        except Exception:
            logger.warning("Suggestion renderer failed for %s", finding.kind, exc_info=True)
            return finding
        return replace(finding, suggestion=suggestion)
