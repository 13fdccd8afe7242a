from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Optional

from .applicator import RunSummary
from .config_store import load_config
from .errors import MacSetupError
from .lib.env import resolve_user
from .lib.hostcheck import detect_host, system_facts
from .lib.manifests import load_manifest
from .lib.privileges import ElevationMode, SudoKeepAlive, require_elevation
from .logging_utils import configure_logging, default_log_path
from .pipeline import RunContext, run_pipeline
from .report import render_checklist, render_summary, save_report
from .verification import checks_from_manifest, run_checks
from .workflows import WORKFLOWS, check_preconditions, get_workflow

logger = logging.getLogger(__name__)


def _finish(ctx: RunContext, *, title: str, log_path: str, report_path: Optional[str]) -> RunSummary:
    summary = ctx.tracker.summary(extra_facts=system_facts(ctx.host, dry_run=ctx.dry_run))
    logger.info("%s", render_summary(summary, title=title, log_path=log_path))
    if report_path:
        save_report(report_path, summary, workflow=ctx.workflow)
        logger.info("Report saved to: %s", report_path)
    return summary


def run(
    workflow_name: str,
    *,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
    log_path: Optional[str] = None,
    report_path: Optional[str] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    dry_run: bool = False,
    verbose: bool = False,
    argv: Optional[list[str]] = None,
) -> RunSummary:
    """Run one workflow end to end and return its summary.

    Every precondition (host, target, privileges) is checked before the first
    step runs, so a refused run changes nothing.
    """

    workflow = get_workflow(workflow_name)

    config = load_config(config_path)
    if dry_run:
        config["dry_run"] = True
    for section, values in (overrides or {}).items():
        config.setdefault(section, {}).update({k: v for k, v in values.items() if v is not None})

    user = resolve_user(config, from_console=workflow.user_from_console, dry_run=config["dry_run"])
    log_dir = config["logging"].get("dir") or user.desktop
    level = "DEBUG" if verbose else config["logging"]["level"]
    actual_log_path = configure_logging(log_path or default_log_path(workflow.log_prefix, log_dir), level=level)

    ctx = RunContext(
        workflow=workflow.name,
        config=config,
        user=user,
        host=detect_host(dry_run=config["dry_run"]),
    )
    logger.info("Starting %s for %s (dry_run=%s)", workflow.name, user.name, ctx.dry_run)

    check_preconditions(workflow, ctx)
    require_elevation(workflow.elevation, argv=argv, dry_run=ctx.dry_run)

    keepalive = SudoKeepAlive(dry_run=ctx.dry_run)
    if workflow.elevation == ElevationMode.SUDO:
        keepalive.start()

    try:
        result = run_pipeline(ctx=ctx, steps=workflow.steps(), start_at=start_at, stop_after=stop_after)
        logger.info("Ran steps: %s", ", ".join(result.ran_steps) or "none")
        if workflow.manifest:
            for v in run_checks(checks_from_manifest(load_manifest(workflow.manifest)), dry_run=ctx.dry_run):
                ctx.tracker.add_verification(v)
    except MacSetupError:
        logger.exception("%s failed during step %s", workflow.name, ctx.state.get("current_step"))
        _finish(ctx, title=f"{workflow.title} (FAILED)", log_path=actual_log_path, report_path=report_path)
        raise
    finally:
        keepalive.stop()

    return _finish(ctx, title=workflow.title, log_path=actual_log_path, report_path=report_path)


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="Path to config file (json|yaml)")
    p.add_argument("--log", default=None, help="Path to log file (default: ~/Desktop/mac_<workflow>_<time>.log)")
    p.add_argument("--report", default=None, help="Also save the run summary here (json|yaml)")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--verbose", action="store_true", help="Log command output (DEBUG)")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_gatekeeper)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="macsetup", description="Provision and harden an Apple Silicon Mac")
    sub = p.add_subparsers(dest="workflow", required=True)

    for wf in WORKFLOWS.values():
        sp = sub.add_parser(wf.name, help=wf.help)
        _add_common(sp)
        if wf.name == "usb":
            sp.add_argument("disk_id", help="Target disk identifier, e.g. disk4 (see `diskutil list`)")
            sp.add_argument("volume_name", nargs="?", default=None, help="Installer volume name")
            sp.add_argument("--installer", default=None, help="Path to the Install macOS app")
        elif wf.name == "erase-install":
            sp.add_argument("--confirm", action="store_true", help="Acknowledge that this erases the Mac")
            sp.add_argument("--volume-name", default=None, help="Name of the new system volume")
            sp.add_argument("--installer", default=None, help="Path to the Install macOS app")

    sub.add_parser("checklist", help="Print the manual post-install privacy checklist")
    return p


def _overrides(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    if args.workflow == "usb":
        return {
            "usb": {
                "disk_id": args.disk_id,
                "volume_name": args.volume_name,
                "installer_app": args.installer,
            }
        }
    if args.workflow == "erase-install":
        return {
            "erase_install": {
                "confirm": args.confirm or None,
                "new_volume_name": args.volume_name,
                "installer_app": args.installer,
            }
        }
    return {}


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    if args.workflow == "checklist":
        print(render_checklist(load_manifest("checklist")))
        return 0

    try:
        run(
            args.workflow,
            config_path=args.config,
            overrides=_overrides(args),
            log_path=args.log,
            report_path=args.report,
            start_at=args.start_at,
            stop_after=args.stop_after,
            dry_run=args.dry_run,
            verbose=args.verbose,
            argv=argv,
        )
    except MacSetupError as e:
        logger.error("%s", e)
        return 1
    return 0
