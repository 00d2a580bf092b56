"""Entry point for a single consensus request.

Validates the inbound payload, normalizes every raw agent result, runs the
orchestrator and wraps the outcome in the ``{success, consensus | error}``
envelope.  Transport concerns (HTTP, CORS, body decoding) belong to the
caller.
"""

from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from grading_consensus.consensus.logging import log_request
from grading_consensus.consensus.normalizer import normalize_agent_results
from grading_consensus.consensus.orchestrator import ConsensusOrchestrator
from grading_consensus.models.agent import Metric
from grading_consensus.models.consensus import ConsensusResponse


class RequestValidationError(Exception):
    """The inbound payload is missing or malformed.

    Attributes:
        missing: Names of required fields that were absent.
    """

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        self.missing = missing or []
        super().__init__(message)


class ConsensusRequest(BaseModel):
    """Inbound consensus payload (wire names)."""

    model_config = ConfigDict(populate_by_name=True)

    # Shape is checked by normalize_agent_results.
    agent_results: Any = None
    metric_evaluations: Any = None
    metrics: list[Metric] | None = None
    metric: Metric | None = None
    teacher_guidelines: str | None = None

    @classmethod
    def parse(cls, payload: object) -> "ConsensusRequest":
        """Validate *payload*, naming every missing required field.

        Raises:
            RequestValidationError: If required fields are absent or the
                payload does not have the expected shape.
        """
        if not isinstance(payload, dict):
            msg = "Request body must be a JSON object"
            raise RequestValidationError(msg)

        missing: list[str] = []
        if payload.get("agentResults") is None and payload.get("metricEvaluations") is None:
            missing.append("agentResults")
        if not payload.get("metrics") and payload.get("metric") is None:
            missing.append("metrics")
        if missing:
            msg = f"Missing required parameters: {' or '.join(missing)}"
            raise RequestValidationError(msg, missing)

        try:
            return cls(
                agent_results=payload.get("agentResults"),
                metric_evaluations=payload.get("metricEvaluations"),
                metrics=payload.get("metrics"),
                metric=payload.get("metric"),
                teacher_guidelines=payload.get("teacherGuidelines"),
            )
        except ValidationError as exc:
            msg = f"Invalid request: {exc.errors()[0]['loc']} {exc.errors()[0]['msg']}"
            raise RequestValidationError(msg) from exc

    @property
    def is_metric_level(self) -> bool:
        return self.metric_evaluations is not None

    def target_metric(self) -> Metric:
        """The single metric a metric-level request reconciles.

        Raises:
            RequestValidationError: If it cannot be determined unambiguously.
        """
        if self.metric is not None:
            return self.metric
        if self.metrics and len(self.metrics) == 1:
            return self.metrics[0]
        msg = "metricEvaluations requires a single 'metric' (or exactly one entry in 'metrics')"
        raise RequestValidationError(msg, ["metric"])


async def handle_consensus_request(
    payload: object,
    orchestrator: ConsensusOrchestrator,
) -> dict:
    """Run one consensus request end to end.

    Args:
        payload: Decoded JSON body.
        orchestrator: Configured orchestrator (with or without an oracle).

    Returns:
        ``{"success": True, "consensus": {...}}`` or
        ``{"success": False, "error": "..."}``.
    """
    try:
        request = ConsensusRequest.parse(payload)
    except RequestValidationError as exc:
        logger.warning("Rejected consensus request: {error}", error=str(exc))
        return ConsensusResponse(success=False, error=str(exc)).to_payload()

    try:
        if request.is_metric_level:
            metric = request.target_metric()
            results = normalize_agent_results(request.metric_evaluations, [metric])
            log_request("metric", len(results), 1)
            consensus = await orchestrator.metric_consensus(
                results, metric, request.teacher_guidelines
            )
        else:
            metrics = request.metrics or [request.metric]
            results = normalize_agent_results(request.agent_results, metrics)
            log_request("report", len(results), len(metrics))
            consensus = await orchestrator.consensus(
                results, metrics, request.teacher_guidelines
            )
    except (RequestValidationError, TypeError) as exc:
        logger.warning("Rejected consensus request: {error}", error=str(exc))
        return ConsensusResponse(success=False, error=str(exc)).to_payload()
    except Exception as exc:
        logger.exception("Consensus computation failed")
        return ConsensusResponse(success=False, error=str(exc)).to_payload()

    return ConsensusResponse(success=True, consensus=consensus).to_payload()
