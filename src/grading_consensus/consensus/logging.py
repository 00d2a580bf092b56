"""Structured logging for consensus requests.

Provides dual-sink logging via loguru:

- **Console sink**: Human-readable, colorized, shows the component name.
  When a shared Rich ``Console`` is provided, output routes through it so
  log lines interleave cleanly with rendered tables.
- **File sink**: JSON-structured JSONL written to ``{log_dir}/{run_id}/consensus.jsonl``
  when a log directory is configured.

Every oracle call and every fallback decision is logged so a reviewer can
tell which path produced a given consensus.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console


def setup_logging(
    log_dir: Path | None = None,
    run_id: str | None = None,
    console: Console | None = None,
    level: str = "INFO",
) -> None:
    """Configure loguru sinks.

    Removes all existing handlers first to avoid duplicate output.

    Args:
        log_dir: Root directory for JSONL logs.  No file sink when ``None``.
        run_id: Sub-directory for this run's log file.
        console: Optional shared Rich Console for output routing.
        level: Minimum console level.
    """
    logger.remove()

    if console is not None:
        logger.add(
            lambda msg: console.print(msg, end="", highlight=False, markup=False),
            format="{time:HH:mm:ss} | {level: <8} | {message}",
            level=level,
            colorize=False,
        )
    else:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level>"
                " | <cyan>{extra[component]}</cyan> | {message}"
            ),
            level=level,
            filter=lambda record: "component" in record["extra"],
        )
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level>"
                " | {message}"
            ),
            level=level,
            filter=lambda record: "component" not in record["extra"],
        )

    if log_dir is not None:
        log_file = log_dir / (run_id or "default") / "consensus.jsonl"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            format="{message}",
            serialize=True,
            level="DEBUG",
        )


def log_oracle_call(
    model: str,
    input_tokens: int | None,
    output_tokens: int | None,
    duration: float,
) -> None:
    """Log a completed oracle call with token counts."""
    with logger.contextualize(component="oracle"):
        logger.info(
            "Oracle call: model={model} input_tokens={input_tokens} "
            "output_tokens={output_tokens} in {duration:.1f}s",
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration=duration,
        )


def log_fallback(reason: str, raw_text: str | None = None) -> None:
    """Log a switch to the statistical or text-extraction path.

    The raw oracle text, when there is one, goes to DEBUG for the audit trail.
    """
    with logger.contextualize(component="consensus"):
        logger.warning("Falling back: {reason}", reason=reason)
        if raw_text is not None:
            logger.debug("Unparseable oracle output:\n{text}", text=raw_text[:2000])


def log_request(mode: str, n_agents: int, n_metrics: int) -> None:
    with logger.contextualize(component="consensus"):
        logger.info(
            "Consensus request: mode={mode} agents={n_agents} metrics={n_metrics}",
            mode=mode,
            n_agents=n_agents,
            n_metrics=n_metrics,
        )
