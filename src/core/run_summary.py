"""Run summary formatting and persistence."""

from __future__ import annotations

import json
from pathlib import Path

from core.types import RunSummary


def render_run_summary(summary: RunSummary) -> str:
    """Render summary into stable multi-line text for CLI output."""
    lines = [
        f"dry_run={str(summary.dry_run).lower()}",
        f"start_time={summary.start_time}",
        f"end_time={summary.end_time or '-'}",
        f"duration_minutes={summary.duration_minutes:.2f}",
    ]
    for row in summary.outcomes:
        line = (
            f"[{row.status.upper()}] {row.name} rows={row.row_count} "
            f"columns={row.column_count} uploaded={str(row.uploaded).lower()}"
        )
        if row.skipped_cycles:
            line += f" skipped={','.join(row.skipped_cycles)}"
        if row.error:
            line += f" :: {row.error}"
        lines.append(line)
    lines.append(f"processed={summary.datasets_processed}")
    lines.append(f"changed={summary.datasets_changed}")
    lines.append(f"unchanged={summary.datasets_unchanged}")
    lines.append(f"failed={summary.datasets_failed}")
    lines.append(f"uploaded={summary.datasets_uploaded}")
    if summary.halted:
        lines.append(f"halted=true :: {summary.halt_reason}")
    return "\n".join(lines)


def run_summary_payload(summary: RunSummary) -> dict[str, object]:
    """Build the JSON-serializable summary payload."""
    return {
        "start_time": summary.start_time,
        "end_time": summary.end_time,
        "duration_minutes": round(summary.duration_minutes, 2),
        "dry_run": summary.dry_run,
        "halted": summary.halted,
        "halt_reason": summary.halt_reason,
        "datasets_processed": summary.datasets_processed,
        "datasets_changed": summary.datasets_changed,
        "datasets_unchanged": summary.datasets_unchanged,
        "datasets_failed": summary.datasets_failed,
        "datasets_uploaded": summary.datasets_uploaded,
        "changed_datasets": summary.changed_datasets,
        "failed_datasets": summary.failed_datasets,
        "outcomes": [
            {
                "name": row.name,
                "status": row.status,
                "uploaded": row.uploaded,
                "row_count": row.row_count,
                "column_count": row.column_count,
                "fingerprint": row.fingerprint,
                "skipped_cycles": list(row.skipped_cycles),
                "error": row.error,
            }
            for row in summary.outcomes
        ],
    }


def save_run_summary(summary: RunSummary, summary_path: Path) -> Path:
    """Persist summary JSON for downstream workflow steps."""
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    summary_path.write_text(
        json.dumps(run_summary_payload(summary), indent=2) + "\n", encoding="utf-8"
    )
    return summary_path
