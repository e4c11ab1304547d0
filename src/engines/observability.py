"""Observability for content analyses.

This module provides the per-analysis metrics record, a one-line log
summary of it, and a JSON run-log writer used by the CLI.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from src.engines.models import AnalysisStatus, FailureKind


logger = logging.getLogger(__name__)


@dataclass
class AnalysisMetrics:
    """Metrics collected while analyzing one request.

    Attributes:
        session_id: Session identifier, None if the request was rejected
            before one was generated
        status: Final outcome
        failure_kind: Why the analysis failed, None on success
        llm_calls: Number of LLM client calls made (retries inside the
            client are not counted separately)
        content_truncated: Whether the content sent was shorter than the
            content received
        shrink_retry_used: Whether the truncated-response retry fired
        channel_count: Channels present in the response
        idea_count: Ideas present in the response
        duration_seconds: Wall-clock time of the analysis
        started_at: When the analysis started
    """
    session_id: str | None = None
    status: AnalysisStatus = AnalysisStatus.FAILURE
    failure_kind: FailureKind | None = None
    llm_calls: int = 0
    content_truncated: bool = False
    shrink_retry_used: bool = False
    channel_count: int = 0
    idea_count: int = 0
    duration_seconds: float = 0.0
    started_at: datetime = field(default_factory=datetime.now)


def log_analysis_metrics(metrics: AnalysisMetrics) -> None:
    """Log a single summary line for a finished analysis.

    Example:
        >>> log_analysis_metrics(AnalysisMetrics(session_id="abc", llm_calls=1))
        # Logs: "Analysis abc finished: status=FAILURE kind=none llm_calls=1 ..."
    """
    kind = metrics.failure_kind.value if metrics.failure_kind else "none"
    logger.info(
        f"Analysis {metrics.session_id or '-'} finished: "
        f"status={metrics.status.value} kind={kind} "
        f"llm_calls={metrics.llm_calls} truncated={metrics.content_truncated} "
        f"shrink_retry={metrics.shrink_retry_used} "
        f"channels={metrics.channel_count} ideas={metrics.idea_count} "
        f"duration={metrics.duration_seconds:.2f}s"
    )


def write_run_log(
    metrics: list[AnalysisMetrics],
    output_dir: str = "output",
    run_timestamp: datetime | None = None,
) -> str:
    """Write the metrics of a CLI run to a JSON log file.

    The file is named run_log_YYYYMMDD_HHMMSS.json and holds a summary
    plus one entry per analysis.

    Args:
        metrics: Metrics for each analysis performed in the run
        output_dir: Directory for the log file, created if missing
        run_timestamp: Timestamp used in the filename (defaults to now)

    Returns:
        The path of the written file

    Raises:
        OSError: If the directory cannot be created or the file written
    """
    run_timestamp = run_timestamp or datetime.now()
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    filepath = output_path / f"run_log_{run_timestamp.strftime('%Y%m%d_%H%M%S')}.json"

    succeeded = sum(1 for m in metrics if m.status is AnalysisStatus.SUCCESS)
    payload = {
        "run_timestamp": run_timestamp.isoformat(),
        "total_analyses": len(metrics),
        "succeeded": succeeded,
        "failed": len(metrics) - succeeded,
        "analyses": [_metrics_to_dict(m) for m in metrics],
    }

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    logger.info(f"Run log written to {filepath}")
    return str(filepath)


def _metrics_to_dict(metrics: AnalysisMetrics) -> dict[str, Any]:
    """Convert AnalysisMetrics to a JSON-serializable dictionary."""
    return {
        "session_id": metrics.session_id,
        "status": metrics.status.value,
        "failure_kind": metrics.failure_kind.value if metrics.failure_kind else None,
        "llm_calls": metrics.llm_calls,
        "content_truncated": metrics.content_truncated,
        "shrink_retry_used": metrics.shrink_retry_used,
        "channel_count": metrics.channel_count,
        "idea_count": metrics.idea_count,
        "duration_seconds": round(metrics.duration_seconds, 3),
        "started_at": metrics.started_at.isoformat(),
    }
