from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from query_pattern_doctor.domain import AnalysisReport, Suggestion


@runtime_checkable
class ReportOutput(Protocol):
    """Protocol for analysis report destinations."""

    @property
    def name(self) -> str:
        ...

    async def send(self, report: AnalysisReport) -> None:
        ...


@runtime_checkable
class SuggestionRenderer(Protocol):
    """Protocol for turning a finding's kind and context into remediation text."""

    def render(self, kind: str, context: Mapping[str, str | int | float]) -> Suggestion:
        ...
