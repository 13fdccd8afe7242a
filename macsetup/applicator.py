"""Best-effort settings application with an ordered record of outcomes.

A ChangeTracker is created per run and handed to every step through the
RunContext. Steps never touch global state: they call `attempt()` and the
tracker decides whether a failure is a warning (continue) or fatal.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import MacSetupError

logger = logging.getLogger(__name__)

# Errors an individual setting may raise without aborting the run.
BEST_EFFORT_ERRORS = (MacSetupError, OSError, subprocess.SubprocessError)


class Outcome(str, Enum):
    APPLIED = "applied"
    WARNING = "warning"
    FAILED = "failed"


@dataclass(frozen=True)
class SettingRecord:
    description: str
    outcome: Outcome
    detail: Optional[str] = None


@dataclass(frozen=True)
class RunSummary:
    records: Tuple[SettingRecord, ...]
    verification: Tuple[Any, ...] = ()
    facts: Tuple[Tuple[str, str], ...] = ()
    notes: Tuple[str, ...] = ()

    @property
    def changes(self) -> Tuple[str, ...]:
        return tuple(r.description for r in self.records if r.outcome == Outcome.APPLIED)

    @property
    def warnings(self) -> Tuple[str, ...]:
        return tuple(r.detail or r.description for r in self.records if r.outcome == Outcome.WARNING)

    @property
    def failures(self) -> Tuple[str, ...]:
        return tuple(r.detail or r.description for r in self.records if r.outcome == Outcome.FAILED)

    @property
    def verified(self) -> bool:
        return all(v.passed for v in self.verification)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changes": list(self.changes),
            "warnings": list(self.warnings),
            "failures": list(self.failures),
            "verification": [
                {"description": v.description, "passed": v.passed, "expected": v.expected, "actual": v.actual}
                for v in self.verification
            ],
            "facts": dict(self.facts),
            "notes": list(self.notes),
        }


@dataclass
class ChangeTracker:
    _records: List[SettingRecord] = field(default_factory=list)
    _verification: List[Any] = field(default_factory=list)
    _facts: Dict[str, str] = field(default_factory=dict)
    _notes: List[str] = field(default_factory=list)

    def attempt(
        self,
        description: str,
        operation: Callable[[], Any],
        *,
        warning: Optional[str] = None,
        required: bool = False,
    ) -> bool:
        """Run one setting mutation and record how it went.

        Returns True on success. Best-effort errors become a warning record,
        unless required=True: then a failed record is added and the error
        propagates as a MacSetupError (OS and subprocess errors are wrapped).
        """

        try:
            operation()
        except BEST_EFFORT_ERRORS as e:
            message = warning or f"Failed: {description}"
            if required:
                self._records.append(SettingRecord(description, Outcome.FAILED, f"{message}: {e}"))
                logger.error("%s: %s", message, e)
                if isinstance(e, MacSetupError):
                    raise
                raise MacSetupError(f"{message}: {e}") from e
            self._records.append(SettingRecord(description, Outcome.WARNING, message))
            logger.warning("%s (%s)", message, e)
            return False

        self._records.append(SettingRecord(description, Outcome.APPLIED))
        logger.info("Applied: %s", description)
        return True

    def warn(self, message: str) -> None:
        self._records.append(SettingRecord(message, Outcome.WARNING, message))
        logger.warning("%s", message)

    def add_verification(self, result: Any) -> None:
        self._verification.append(result)

    def add_fact(self, key: str, value: str) -> None:
        self._facts[key] = value

    def add_note(self, note: str) -> None:
        self._notes.append(note)

    @property
    def records(self) -> Tuple[SettingRecord, ...]:
        return tuple(self._records)

    def summary(self, extra_facts: Optional[Mapping[str, str]] = None) -> RunSummary:
        facts = dict(self._facts)
        facts.update(extra_facts or {})
        return RunSummary(
            records=tuple(self._records),
            verification=tuple(self._verification),
            facts=tuple(facts.items()),
            notes=tuple(self._notes),
        )
