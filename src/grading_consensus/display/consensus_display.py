"""Rich rendering of consensus results and request errors.

Report-level results render as a per-metric score table followed by
agreement, disagreement and review-flag panels; metric-level results add
the aggregated strengths, weaknesses and recommendations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from grading_consensus.models.consensus import (
    ConsensusResult,
    MetricConsensus,
    MetricStatistics,
)
from grading_consensus.policy import REVIEW_SCORE_FLOOR

if TYPE_CHECKING:
    from rich.console import Console


def _score_style(score: int) -> str:
    if score < REVIEW_SCORE_FLOOR:
        return "red"
    if score < 85:
        return "yellow"
    return "green"


def _bullets(items: list[str], style: str) -> Text:
    body = Text()
    for index, item in enumerate(items):
        if index:
            body.append("\n")
        body.append("- ", style=style)
        body.append(item)
    return body


class ConsensusDisplay:
    """Renders consensus output through a shared ``Console``."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def _stats_cells(self, stats: MetricStatistics | None) -> tuple[str, str, str]:
        if stats is None or not stats.scores:
            return "-", "-", "no data"
        scores = ", ".join(f"{s:g}" for s in stats.scores)
        return scores, f"{stats.range:g}", stats.agreement.value

    def _narrative(self, result: ConsensusResult | MetricConsensus) -> list[Panel]:
        panels = [Panel(_bullets(result.agreements, "green"), title="Agreements")]
        if result.disagreements:
            panels.append(
                Panel(_bullets(result.disagreements, "yellow"), title="Disagreements")
            )
        if result.flags_for_review:
            panels.append(
                Panel(
                    _bullets(result.flags_for_review, "red"),
                    title="Flags for Review",
                    border_style="red",
                )
            )
        return panels

    def show_report(self, result: ConsensusResult) -> None:
        """Render a report-level consensus."""
        table = Table(title="Consensus Scores", expand=True)
        table.add_column("Metric", style="bold")
        table.add_column("Score", justify="right")
        table.add_column("Agent scores")
        table.add_column("Range", justify="right")
        table.add_column("Agreement")

        for key, score in result.consensus_scores.items():
            scores, spread, agreement = self._stats_cells(result.statistics.get(key))
            table.add_row(
                key,
                f"[{_score_style(score)}]{score}[/{_score_style(score)}]",
                scores,
                spread,
                agreement,
            )

        header = Text()
        header.append("Confidence: ", style="bold")
        header.append(f"{result.confidence}%   ")
        header.append("Source: ", style="bold")
        header.append(result.source.value)

        self.console.print(table)
        self.console.print(header)
        for panel in self._narrative(result):
            self.console.print(panel)
        self.console.print(Panel(result.meta_feedback, title="Meta Feedback"))
        self.console.print(Panel(result.methodology, title="Methodology", style="dim"))

    def show_metric(self, result: MetricConsensus) -> None:
        """Render a metric-level consensus."""
        scores, spread, agreement = self._stats_cells(result.statistics)
        style = _score_style(result.consensus_score)
        summary = Text()
        summary.append("Score:      ", style="bold")
        summary.append(f"{result.consensus_score}\n", style=style)
        summary.append("Confidence: ", style="bold")
        summary.append(f"{result.confidence}%\n")
        summary.append("Agents:     ", style="bold")
        summary.append(f"{scores} (range {spread}, {agreement})\n")
        summary.append("Source:     ", style="bold")
        summary.append(result.source.value)

        parts: list = [summary, Text(""), Text(result.synthesized_feedback)]
        self.console.print(Panel(Group(*parts), title=result.metric))
        for panel in self._narrative(result):
            self.console.print(panel)
        for title, items in (
            ("Key Strengths", result.key_strengths),
            ("Key Weaknesses", result.key_weaknesses),
            ("Priority Recommendations", result.priority_recommendations),
        ):
            if items:
                self.console.print(Panel(_bullets(items, "cyan"), title=title))
        self.console.print(Panel(result.methodology, title="Methodology", style="dim"))

    def show_error(self, message: str, suggestion: str = "") -> None:
        """Render a structured error panel.

        Args:
            message: Human-readable error description (truncated to 500 chars).
            suggestion: Optional actionable fix suggestion.
        """
        body = Text()
        body.append("Message:     ", style="bold")
        body.append(message[:500])
        if suggestion:
            body.append("\nSuggestion:  ", style="bold")
            body.append(suggestion)

        self.console.print(Panel(body, border_style="red", title="Consensus Error"))
