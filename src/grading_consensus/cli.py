"""Typer CLI entry point for grading-consensus."""

import asyncio
import json
from pathlib import Path

import typer
from dotenv import load_dotenv

load_dotenv()

app = typer.Typer(
    name="grading-consensus",
    help="Multi-agent report grading consensus CLI",
    no_args_is_help=True,
)


_config_option = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration YAML file. Uses env vars if not provided.",
    exists=True,
)


def _load_settings(config: Path | None) -> "Settings":
    from grading_consensus.config import Settings

    if config is not None:
        return Settings.from_yaml(config)
    return Settings.from_env()


def _load_metrics(path: Path) -> list["Metric"]:
    """Read metrics from YAML: a list, or a mapping with a ``metrics`` list."""
    import yaml

    from grading_consensus.models.agent import Metric

    raw = yaml.safe_load(path.read_text()) or []
    if isinstance(raw, dict):
        raw = raw.get("metrics") or []
    if not isinstance(raw, list) or not raw:
        msg = f"No metrics found in {path}"
        raise ValueError(msg)
    return [Metric.model_validate(entry) for entry in raw]


@app.command()
def consensus(
    payload: Path = typer.Argument(
        ...,
        help="Path to a consensus request JSON file",
        exists=True,
    ),
    config: Path = _config_option,
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the response envelope as JSON instead of tables",
    ),
) -> None:
    """Reconcile agent results from a request payload.

    Example:
        grading-consensus consensus request.json -c config.yaml
    """
    from rich.console import Console

    from grading_consensus.consensus import (
        ConsensusOrchestrator,
        handle_consensus_request,
        setup_logging,
    )
    from grading_consensus.display import ConsensusDisplay
    from grading_consensus.llm import create_llm
    from grading_consensus.models.consensus import ConsensusResult, MetricConsensus

    console = Console()
    display = ConsensusDisplay(console)

    try:
        settings = _load_settings(config)
        body = json.loads(payload.read_text())
    except (ValueError, OSError) as e:
        display.show_error(str(e), "Check the payload and config files")
        raise typer.Exit(code=1) from None

    setup_logging(
        log_dir=Path(settings.log_dir) if settings.log_dir else None,
        run_id=payload.stem,
        console=None if as_json else console,
    )
    orchestrator = ConsensusOrchestrator(
        llm=create_llm(settings.oracle), config=settings.consensus
    )
    response = asyncio.run(handle_consensus_request(body, orchestrator))

    if as_json:
        typer.echo(json.dumps(response, indent=2))
    elif response["success"]:
        data = response["consensus"]
        if "consensusScore" in data:
            display.show_metric(MetricConsensus.model_validate(data))
        else:
            display.show_report(ConsensusResult.model_validate(data))
    else:
        display.show_error(
            response["error"],
            "Requests need agentResults (or metricEvaluations) and metrics",
        )

    if not response["success"]:
        raise typer.Exit(code=1)


@app.command()
def grade(
    report: Path = typer.Argument(
        ...,
        help="Path to the report text to grade",
        exists=True,
    ),
    metrics: Path = typer.Option(
        ...,
        "--metrics",
        "-m",
        help="YAML file listing the grading metrics",
        exists=True,
    ),
    config: Path = _config_option,
    guidelines: Path = typer.Option(
        None,
        "--guidelines",
        "-g",
        help="Optional teacher guidelines text file",
        exists=True,
    ),
    instructions: str = typer.Option(
        None,
        "--instructions",
        "-i",
        help="Extra instructions appended to every persona's prompt",
    ),
) -> None:
    """Grade a report with every expert persona, then reconcile.

    Example:
        grading-consensus grade report.txt -m metrics.yaml -i "Be strict about units"
    """
    from rich.console import Console

    from grading_consensus.agents import AgentGrader
    from grading_consensus.consensus import ConsensusOrchestrator, setup_logging
    from grading_consensus.consensus.orchestrator import PROMPT_DIR
    from grading_consensus.display import ConsensusDisplay
    from grading_consensus.llm import create_llm

    console = Console()
    display = ConsensusDisplay(console)

    try:
        settings = _load_settings(config)
        metric_list = _load_metrics(metrics)
    except (ValueError, OSError) as e:
        display.show_error(str(e), "Check the metrics and config files")
        raise typer.Exit(code=1) from None

    llm = create_llm(settings.oracle)
    if llm is None:
        display.show_error(
            "Grading needs an LLM but none is configured",
            "Set OPENAI_API_KEY or GEMINI_API_KEY, or pass --config",
        )
        raise typer.Exit(code=1)

    setup_logging(
        log_dir=Path(settings.log_dir) if settings.log_dir else None,
        run_id=report.stem,
        console=console,
    )
    guideline_text = guidelines.read_text() if guidelines is not None else None
    grader = AgentGrader(llm=llm, prompt_dir=PROMPT_DIR)
    orchestrator = ConsensusOrchestrator(llm=llm, config=settings.consensus)

    async def _run() -> "ConsensusResult | None":
        results = await grader.grade_all(
            report.read_text(),
            metric_list,
            guideline_text,
            custom_instructions=instructions,
        )
        if not results:
            return None
        return await orchestrator.consensus(
            list(results.values()), metric_list, guideline_text
        )

    try:
        result = asyncio.run(_run())
    except Exception as e:
        display.show_error(str(e))
        raise typer.Exit(code=1) from None

    if result is None:
        display.show_error(
            "Every grading agent failed",
            "Check the LLM credentials and the log output above",
        )
        raise typer.Exit(code=1)
    display.show_report(result)


if __name__ == "__main__":
    app()
