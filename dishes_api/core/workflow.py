"""
Step runners for multi-call operations against Supabase.

``run_cascade`` executes an ordered list of steps where each step is either
best-effort (failure logged and collected as a warning) or critical (failure
stops the sequence). ``run_saga`` executes steps that each may carry a
rollback; when a later step fails, the rollbacks of the completed steps run
in reverse order and their own failures are logged and swallowed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

StepAction = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class CascadeStep:
    name: str
    action: StepAction
    critical: bool = False
    # Errors for which a critical step still counts as done (e.g. row already gone)
    tolerate: Optional[Callable[[Exception], bool]] = None


@dataclass
class StepWarning:
    step: str
    error: str


@dataclass
class CascadeOutcome:
    completed: List[str] = field(default_factory=list)
    warnings: List[StepWarning] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None


async def run_cascade(steps: List[CascadeStep], context: Optional[Dict[str, Any]] = None) -> CascadeOutcome:
    context = context or {}
    outcome = CascadeOutcome()
    for step in steps:
        try:
            await step.action()
        except Exception as e:
            if step.tolerate is not None and step.tolerate(e):
                outcome.completed.append(step.name)
                continue
            if step.critical:
                logger.error(
                    "Critical step %s failed: %s", step.name, e,
                    extra={"event": "cascade_step_failed", "step": step.name, "critical": True, **context},
                )
                outcome.failed_step = step.name
                outcome.error = e
                return outcome
            logger.warning(
                "Step %s failed, continuing: %s", step.name, e,
                extra={"event": "cascade_step_failed", "step": step.name, "critical": False, **context},
            )
            outcome.warnings.append(StepWarning(step=step.name, error=str(e)))
            continue
        outcome.completed.append(step.name)
    return outcome


@dataclass(frozen=True)
class SagaStep:
    name: str
    action: StepAction
    rollback: Optional[StepAction] = None


class SagaFailed(Exception):
    def __init__(self, step: str, error: Exception):
        super().__init__(f"{step}: {error}")
        self.step = step
        self.error = error


async def run_saga(steps: List[SagaStep], context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Run ``steps`` in order and return ``{step name: action result}``.

    Raises ``SagaFailed`` carrying the failing step once rollbacks are done.
    """
    context = context or {}
    results: Dict[str, Any] = {}
    done: List[SagaStep] = []
    for step in steps:
        try:
            results[step.name] = await step.action()
        except Exception as e:
            await _roll_back(done, context)
            raise SagaFailed(step.name, e) from e
        done.append(step)
    return results


async def _roll_back(done: List[SagaStep], context: Dict[str, Any]) -> None:
    for step in reversed(done):
        if step.rollback is None:
            continue
        try:
            await step.rollback()
            logger.info("Rolled back step %s", step.name, extra={"event": "rollback_done", "step": step.name, **context})
        except Exception as e:
            logger.warning(
                "Rollback of step %s failed: %s", step.name, e,
                extra={"event": "rollback_failed", "step": step.name, **context},
            )
