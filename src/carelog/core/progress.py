"""Completion progress for a resident's relevant checklist tasks."""

import math
from collections.abc import Iterable, Sequence

from carelog.core.catalog import tasks_by_category, total_estimated_minutes
from carelog.core.shifts import relevant_categories
from carelog.db.models import CompletionEvent, Progress, Task


def percent(done: int, total: int) -> int:
    """Whole-number percentage, rounding halves up. An empty set is fully done."""
    if total == 0:
        return 100
    return math.floor(done * 100 / total + 0.5)


def completed_task_ids(completions: Iterable[CompletionEvent]) -> set[str]:
    """Ids of tasks with at least one non-skipped completion."""
    return {c.task_id for c in completions if not c.skipped}


def compute_progress(
    tasks: Sequence[Task],
    completions: Iterable[CompletionEvent],
    shift: str,
) -> Progress:
    """Progress over the tasks relevant to ``shift``.

    Skipped events do not count and duplicate events for the same task count
    once. Task dependencies play no part in the figures.
    """
    relevant = tasks_by_category(*relevant_categories(shift), tasks=tasks)
    done_ids = completed_task_ids(completions)

    completed = [t for t in relevant if t.id in done_ids]
    required = [t for t in relevant if t.required]
    required_completed = [t for t in required if t.id in done_ids]
    remaining = [t for t in relevant if t.id not in done_ids]

    return Progress(
        total=len(relevant),
        completed=len(completed),
        percentage=percent(len(completed), len(relevant)),
        required_total=len(required),
        required_completed=len(required_completed),
        required_percentage=percent(len(required_completed), len(required)),
        shift=shift,
        remaining_minutes=total_estimated_minutes(remaining),
    )
