from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .applicator import ChangeTracker
from .errors import ConfigError
from .lib.env import UserContext
from .lib.hostcheck import HostInfo

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Everything a step may read or record during one run."""

    workflow: str
    config: Dict[str, Any]
    user: UserContext
    host: HostInfo
    tracker: ChangeTracker = field(default_factory=ChangeTracker)
    # Scratch space for values produced by one step and consumed by a later one.
    state: Dict[str, Any] = field(default_factory=dict)

    @property
    def dry_run(self) -> bool:
        return bool(self.config.get("dry_run", False))

    def section(self, name: str) -> Dict[str, Any]:
        return self.config.get(name) or {}


class Step(Protocol):
    """A single idempotent step."""

    step_id: str

    def run(self, ctx: RunContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(
    *,
    ctx: RunContext,
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order; a step that raises aborts the run."""

    ids = [s.step_id for s in steps]
    for wanted in (start_at, stop_after):
        if wanted is not None and wanted not in ids:
            raise ConfigError(f"Unknown step {wanted!r}; choose from {', '.join(ids)}")

    ran: List[str] = []
    skipped: List[str] = []

    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                skipped.append(step.step_id)
                continue

        ctx.state["current_step"] = step.step_id
        logger.info("Running step %s", step.step_id)
        step.run(ctx)
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    ctx.state["current_step"] = None
    return PipelineResult(ran_steps=ran, skipped_steps=skipped)
