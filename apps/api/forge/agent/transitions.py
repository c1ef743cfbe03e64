"""Declarative state machine for plan step status.

PENDING --run--> IN_PROGRESS --success--> COMPLETED
                 IN_PROGRESS --failure--> FAILED --run--> IN_PROGRESS

COMPLETED is terminal for a step instance.
"""

from __future__ import annotations

from forge.errors import InvalidTransitionError
from forge.schemas import PlanStep, StepStatus


ALLOWED_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.PENDING: frozenset({StepStatus.IN_PROGRESS}),
    StepStatus.IN_PROGRESS: frozenset({StepStatus.COMPLETED, StepStatus.FAILED}),
    StepStatus.FAILED: frozenset({StepStatus.IN_PROGRESS}),
    StepStatus.COMPLETED: frozenset(),
}


def can_transition(current: StepStatus, target: StepStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(step: PlanStep, target: StepStatus) -> PlanStep:
    """Move a step to ``target`` in place.
    
    Raises:
        InvalidTransitionError: The table has no such edge
    """
    if not can_transition(step.status, target):
        raise InvalidTransitionError(step.id, step.status.value, target.value)
    step.status = target
    return step
