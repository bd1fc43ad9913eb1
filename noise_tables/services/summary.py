from __future__ import annotations

from ..models.processing_result import BatchResult

"""SUMMARY line rendering.

Format:
SUMMARY files={total} success={success} failed={failed} status={status} elapsed_sec={elapsed}
"""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: BatchResult) -> str:
    """Render the SUMMARY line for a finished batch run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> render_summary_line(BatchResult(
        ...     success_files=2, failed_files=0, start_time=t, end_time=t, elapsed_seconds=1.5))
        'SUMMARY files=2 success=2 failed=0 status=completed elapsed_sec=1.5'
    """
    return (
        f"SUMMARY files={result.total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"status={result.status.value} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
