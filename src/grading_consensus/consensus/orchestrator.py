"""Oracle-backed consensus with a guaranteed statistical fallback.

The orchestrator asks an LLM "oracle" to synthesize a consensus from the
agents' results.  The oracle is untrusted: it may be unconfigured, slow,
unreachable, or return prose instead of JSON.  Each of those outcomes has
a defined recovery:

- no oracle configured       -> statistical consensus (supported mode)
- transport error / timeout  -> statistical consensus
- unusable report-level JSON -> statistical consensus
- unusable metric-level JSON -> text extraction from the oracle's prose

There is exactly one oracle attempt per request.  Only an exception raised
by the fallback computation itself escapes to the caller.
"""

import asyncio
import json
import time
from collections.abc import Sequence
from pathlib import Path

from jinja2 import Template
from loguru import logger

from grading_consensus.config import ConsensusConfig
from grading_consensus.consensus.logging import log_fallback, log_oracle_call
from grading_consensus.consensus.normalizer import (
    has_numeric_scores,
    validate_oracle_consensus,
    validate_oracle_metric_consensus,
)
from grading_consensus.consensus.numeric import coerce_number
from grading_consensus.consensus.statistics import StatisticalConsensus
from grading_consensus.consensus.text_extraction import extract_metric_consensus
from grading_consensus.llm.base import BaseLLM, LLMError
from grading_consensus.llm.response_parser import extract_json
from grading_consensus.models.agent import AgentResult, Metric
from grading_consensus.models.consensus import (
    ConsensusResult,
    ConsensusSource,
    MetricConsensus,
)
from grading_consensus.policy import (
    MAX_KEY_STRENGTHS,
    MAX_KEY_WEAKNESSES,
    MAX_PRIORITY_RECOMMENDATIONS,
)

PROMPT_DIR = Path(__file__).resolve().parent.parent / "templates" / "prompts"


class OracleFailure(Exception):
    """The oracle call produced no usable text (transport error or timeout)."""


class ConsensusOrchestrator:
    """Obtain a consensus from the oracle, falling back to statistics.

    Args:
        llm: Oracle adapter, or ``None`` to always use the statistical engine.
        config: Timeout and output options.
        prompt_dir: Directory holding the moderator prompt templates.
    """

    REPORT_TEMPLATE = "consensus_moderator.j2"
    METRIC_TEMPLATE = "metric_moderator.j2"
    USER_PROMPT = (
        "Please analyze the agent evaluation results and provide your "
        "consensus assessment following the specified JSON format."
    )

    def __init__(
        self,
        llm: BaseLLM | None = None,
        config: ConsensusConfig | None = None,
        prompt_dir: Path = PROMPT_DIR,
    ) -> None:
        self.llm = llm
        self.config = config or ConsensusConfig()
        self.prompt_dir = prompt_dir

    @property
    def oracle_available(self) -> bool:
        return self.llm is not None

    def _render(self, template_name: str, **template_vars: object) -> str:
        template_text = (self.prompt_dir / template_name).read_text()
        return Template(template_text).render(**template_vars)

    async def _ask_oracle(self, system_prompt: str) -> str:
        """Make the single oracle call, bounded by the configured timeout.

        Raises:
            OracleFailure: On any adapter error or timeout.
        """
        assert self.llm is not None
        timeout = self.config.oracle_timeout_seconds
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.llm.generate(system_prompt, self.USER_PROMPT),
                timeout=timeout,
            )
        except TimeoutError as exc:
            msg = f"oracle timed out after {timeout:g}s"
            raise OracleFailure(msg) from exc
        except LLMError as exc:
            msg = f"oracle unavailable: {exc.message}"
            raise OracleFailure(msg) from exc

        log_oracle_call(
            response.model,
            response.input_tokens,
            response.output_tokens,
            time.monotonic() - start,
        )
        return response.raw_text

    @staticmethod
    def _results_json(results: Sequence[AgentResult]) -> str:
        payload = [
            r.model_dump(by_alias=True, exclude={"estimated_scores"}) for r in results
        ]
        return json.dumps(payload, indent=2)

    # ------------------------------------------------------------------
    # Report-level
    # ------------------------------------------------------------------

    @staticmethod
    def _statistical(
        results: Sequence[AgentResult],
        metrics: Sequence[Metric],
        reason: str,
        raw_text: str | None = None,
    ) -> ConsensusResult:
        log_fallback(reason, raw_text)
        result = StatisticalConsensus.reconcile(results, metrics)
        return result.model_copy(
            update={"methodology": f"Statistical fallback ({reason}): {result.methodology}"}
        )

    async def consensus(
        self,
        results: Sequence[AgentResult],
        metrics: Sequence[Metric],
        guidelines: str | None = None,
    ) -> ConsensusResult:
        """Report-level consensus across every metric.

        Args:
            results: Normalized agent results, one per persona.
            metrics: Metrics to reconcile.
            guidelines: Teacher guidelines passed verbatim to the oracle.

        Returns:
            A complete :class:`ConsensusResult`; ``source`` tells which path
            produced it.
        """
        if self.llm is None:
            logger.info("No oracle configured; computing statistical consensus")
            return StatisticalConsensus.reconcile(results, metrics)

        system_prompt = self._render(
            self.REPORT_TEMPLATE,
            agent_results_json=self._results_json(results),
            metrics=metrics,
            guidelines=guidelines,
        )
        try:
            raw_text = await self._ask_oracle(system_prompt)
        except OracleFailure as exc:
            return self._statistical(results, metrics, str(exc))

        parsed = extract_json(raw_text)
        if parsed is None:
            return self._statistical(
                results, metrics, "oracle response was not valid JSON", raw_text
            )
        if not has_numeric_scores(parsed, metrics):
            return self._statistical(
                results, metrics, "oracle response had no numeric consensus scores", raw_text
            )

        return validate_oracle_consensus(parsed, results, metrics)

    # ------------------------------------------------------------------
    # Metric-level
    # ------------------------------------------------------------------

    def _trim_narrative(self, result: MetricConsensus) -> MetricConsensus:
        if self.config.include_narrative:
            return result
        return result.model_copy(
            update={
                "key_strengths": [],
                "key_weaknesses": [],
                "priority_recommendations": [],
            }
        )

    def _from_text(
        self,
        raw_text: str,
        metric: Metric,
        statistical: MetricConsensus,
    ) -> MetricConsensus:
        """Build a metric consensus from unstructured oracle output.

        Score, confidence and narrative come from the text; agreement lines
        and review flags come from the statistics of the agents' scores,
        re-evaluated against the extracted score.
        """
        extracted = extract_metric_consensus(raw_text, metric)
        agreements: list[str] = []
        disagreements: list[str] = []
        flags: list[str] = []
        if statistical.statistics is not None:
            StatisticalConsensus.describe(
                statistical.statistics,
                extracted.score,
                agreements,
                disagreements,
                flags,
                placeholder_used=False,
            )
        if extracted.score_estimated:
            flags.append(
                f"{metric.name} consensus score was estimated from the tone of "
                f"the moderator's feedback"
            )
            how = "estimated from feedback tone"
        else:
            how = "read from the response text"

        result = MetricConsensus(
            metric=metric.name,
            consensus_score=extracted.score,
            agreements=agreements or statistical.agreements,
            disagreements=disagreements,
            confidence=extracted.confidence,
            flags_for_review=flags,
            synthesized_feedback=" ".join(extracted.feedback),
            methodology=(
                f"Text extraction from an unstructured oracle response; "
                f"score {how}"
            ),
            key_strengths=extracted.strengths[:MAX_KEY_STRENGTHS],
            key_weaknesses=extracted.weaknesses[:MAX_KEY_WEAKNESSES],
            priority_recommendations=extracted.recommendations[:MAX_PRIORITY_RECOMMENDATIONS],
            source=ConsensusSource.TEXT_EXTRACTION,
            statistics=statistical.statistics,
        )
        return self._trim_narrative(result)

    async def metric_consensus(
        self,
        results: Sequence[AgentResult],
        metric: Metric,
        guidelines: str | None = None,
    ) -> MetricConsensus:
        """Consensus for one metric from a primary and supporting evaluators.

        Args:
            results: Normalized per-agent evaluations of *metric*; at most
                one is expected to be marked ``is_primary``.
            metric: The metric being reconciled.
            guidelines: Teacher guidelines passed verbatim to the oracle.
        """
        statistical = StatisticalConsensus.reconcile_metric(
            results, metric, include_narrative=self.config.include_narrative
        )
        if self.llm is None:
            logger.info("No oracle configured; computing statistical consensus")
            return statistical

        system_prompt = self._render(
            self.METRIC_TEMPLATE,
            evaluations_json=self._results_json(results),
            metric=metric,
            guidelines=guidelines,
        )
        try:
            raw_text = await self._ask_oracle(system_prompt)
        except OracleFailure as exc:
            reason = str(exc)
            log_fallback(reason)
            return statistical.model_copy(
                update={
                    "methodology": f"Statistical fallback ({reason}): {statistical.methodology}"
                }
            )

        parsed = extract_json(raw_text)
        if parsed is not None and coerce_number(parsed.get("consensusScore")) is not None:
            return self._trim_narrative(
                validate_oracle_metric_consensus(parsed, metric, statistical)
            )

        log_fallback("oracle response had no structured consensus score", raw_text)
        return self._from_text(raw_text, metric, statistical)
