"""Planner module.

Responsibilities:
- Parse the planner model's output into a strict Plan
- Provide the single-step fallback plan used when parsing fails
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from forge.errors import PlanParseError
from forge.schemas import FileOperation, Plan, PlanStep, StepStatus


DEFAULT_PLAN_TITLE = "Implementation Plan"


def parse_plan(text: str, prompt: str = "") -> Plan:
    """Parse a JSON plan; every step starts PENDING.
    
    Raises:
        PlanParseError: Invalid JSON, no non-empty ``steps`` array, or a step
            missing required fields
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise PlanParseError(f"Plan is not valid JSON: {e}") from e
    
    if not isinstance(data, dict):
        raise PlanParseError("Plan must be a JSON object")
    
    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list) or not raw_steps:
        raise PlanParseError("Plan has no steps array")
    
    steps = [_parse_step(raw, index) for index, raw in enumerate(raw_steps)]
    
    ids = [s.id for s in steps]
    if len(set(ids)) != len(ids):
        for index, step in enumerate(steps, 1):
            step.id = str(index)
    
    title = data.get("title")
    return Plan(
        title=str(title) if title else DEFAULT_PLAN_TITLE,
        prompt=prompt,
        steps=steps,
    )


def _parse_step(raw: Any, index: int) -> PlanStep:
    if not isinstance(raw, dict):
        raise PlanParseError(f"Step {index + 1} is not an object")
    
    fields = {k: raw[k] for k in ("title", "description", "file_path") if raw.get(k) is not None}
    step_id = raw.get("id")
    fields["id"] = str(step_id) if step_id not in (None, "") else str(index + 1)
    fields.setdefault("title", fields.get("description", ""))
    
    operation = raw.get("operation")
    if isinstance(operation, str):
        fields["operation"] = operation.strip().upper()
    
    try:
        # Any status the model emitted is ignored
        return PlanStep(**fields, status=StepStatus.PENDING)
    except ValidationError as e:
        raise PlanParseError(f"Step {index + 1} is invalid: {e}") from e


def fallback_plan(prompt: str, file_path: str = "docs/README.md") -> Plan:
    """Single manual-review step so the workflow can still proceed."""
    return Plan(
        title="Manual Review",
        prompt=prompt,
        fallback=True,
        steps=[
            PlanStep(
                id="1",
                title="Analyze Request",
                description=f"Review constraints and apply the request: {prompt}",
                file_path=file_path,
                operation=FileOperation.UPDATE,
                status=StepStatus.PENDING,
            )
        ],
    )
