from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from .applicator import RunSummary
from .config_store import save_document

RULE = "=" * 70


def render_summary(summary: RunSummary, *, title: str, log_path: Optional[str] = None) -> str:
    lines: List[str] = ["", RULE, title.upper().center(70).rstrip(), RULE, ""]
    lines.append(f"Completed at {datetime.now():%Y-%m-%d %H:%M:%S}")
    lines.append("")

    lines.append(f"CHANGES APPLIED ({len(summary.changes)} total):")
    lines.extend(f"  • {c}" for c in summary.changes)
    lines.append("")

    if summary.warnings:
        lines.append(f"WARNINGS ({len(summary.warnings)} total):")
        lines.extend(f"  ⚠ {w}" for w in summary.warnings)
        lines.append("")

    if summary.failures:
        lines.append(f"FAILURES ({len(summary.failures)} total):")
        lines.extend(f"  ✗ {f}" for f in summary.failures)
        lines.append("")

    if summary.verification:
        lines.append("VERIFICATION RESULTS:")
        lines.extend(f"  {v.line()}" for v in summary.verification)
        lines.append("")

    if summary.facts:
        lines.append("SYSTEM INFORMATION:")
        lines.extend(f"  {k}: {v}" for k, v in summary.facts)
        lines.append("")

    if summary.notes:
        lines.append("NOTES:")
        lines.extend(f"  {i}. {n}" for i, n in enumerate(summary.notes, 1))
        lines.append("")

    lines.append(RULE)
    if log_path:
        lines.append(f"Log saved to: {log_path}")
    lines.append("Safe to run again: every setting is re-applied idempotently")
    lines.append(RULE)
    return "\n".join(lines)


def save_report(path: str, summary: RunSummary, *, workflow: str) -> None:
    doc = {"workflow": workflow, **summary.to_dict()}
    save_document(path, doc)


def render_checklist(checklist: Dict[str, Any]) -> str:
    """Manual post-install actions that cannot be scripted on an unmanaged Mac."""

    lines: List[str] = [RULE, "MANUAL CHECKLIST".center(70).rstrip(), RULE, ""]
    lines.append("Do these by hand (protected by TCC):")
    for i, item in enumerate(checklist.get("manual") or [], 1):
        lines.append(f"  {i}. {item['title']}")
        lines.append(f"     {item['where']}")
    lines.append("")
    lines.append("Then confirm:")
    lines.extend(f"  [ ] {item['title']} ({item['where']})" for item in checklist.get("verify") or [])
    lines.append("")
    lines.append(RULE)
    return "\n".join(lines)
