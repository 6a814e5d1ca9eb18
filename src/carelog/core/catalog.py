"""Static catalog of daily care checklist tasks."""

from collections.abc import Iterable, Sequence

from carelog.core.errors import ValidationError
from carelog.core.shifts import validate_category
from carelog.db.models import Task

DAILY_CHECKLIST: tuple[Task, ...] = (
    # Morning (6am - 12pm)
    Task(
        id="morning-vitals",
        label="Morning Vitals",
        description="Check temperature, BP, heart rate",
        emoji="🩺",
        category="morning",
        required=True,
        estimated_minutes=5,
    ),
    Task(
        id="morning-meds",
        label="Morning Medications",
        description="Administer prescribed morning medications",
        emoji="💊",
        category="morning",
        required=True,
        estimated_minutes=10,
        dependencies=("morning-vitals",),
    ),
    Task(
        id="breakfast-assist",
        label="Breakfast Assistance",
        description="Assist with breakfast and document intake",
        emoji="🍽️",
        category="morning",
        required=True,
        estimated_minutes=30,
    ),
    Task(
        id="morning-hygiene",
        label="Morning Hygiene",
        description="Assist with washing, teeth, grooming",
        emoji="🧼",
        category="morning",
        required=True,
        estimated_minutes=20,
    ),
    Task(
        id="morning-mobility",
        label="Mobility Check",
        description="Assess mobility and assist with movement",
        emoji="🚶",
        category="morning",
        required=True,
        estimated_minutes=10,
    ),
    Task(
        id="hydration-morning",
        label="Morning Hydration",
        description="Encourage and monitor fluid intake",
        emoji="💧",
        category="morning",
        required=True,
        estimated_minutes=5,
    ),
    # Afternoon (12pm - 6pm)
    Task(
        id="lunch-assist",
        label="Lunch Assistance",
        description="Assist with lunch and document intake",
        emoji="🥙",
        category="afternoon",
        required=True,
        estimated_minutes=30,
    ),
    Task(
        id="afternoon-meds",
        label="Afternoon Medications",
        description="Administer prescribed afternoon medications",
        emoji="💊",
        category="afternoon",
        required=False,
        estimated_minutes=5,
    ),
    Task(
        id="afternoon-activity",
        label="Afternoon Activity",
        description="Participate in scheduled activities",
        emoji="🎨",
        category="afternoon",
        required=False,
        estimated_minutes=45,
    ),
    Task(
        id="hydration-afternoon",
        label="Afternoon Hydration",
        description="Continue monitoring fluid intake",
        emoji="💧",
        category="afternoon",
        required=True,
        estimated_minutes=5,
    ),
    # Evening (6pm - 12am)
    Task(
        id="dinner-assist",
        label="Dinner Assistance",
        description="Assist with dinner and document intake",
        emoji="🍽️",
        category="evening",
        required=True,
        estimated_minutes=30,
    ),
    Task(
        id="evening-meds",
        label="Evening Medications",
        description="Administer prescribed evening medications",
        emoji="💊",
        category="evening",
        required=True,
        estimated_minutes=5,
    ),
    Task(
        id="evening-hygiene",
        label="Evening Hygiene",
        description="Assist with evening personal care",
        emoji="🛁",
        category="evening",
        required=True,
        estimated_minutes=15,
    ),
    Task(
        id="bedtime-prep",
        label="Bedtime Preparation",
        description="Assist with getting ready for bed",
        emoji="😴",
        category="evening",
        required=True,
        estimated_minutes=15,
    ),
    # As needed
    Task(
        id="prn-pain-assess",
        label="Pain Assessment",
        description="Assess pain levels if requested",
        emoji="❤️‍🩹",
        category="prn",
        required=False,
        estimated_minutes=5,
    ),
    Task(
        id="prn-bathroom",
        label="Bathroom Assistance",
        description="Assist with toileting as needed",
        emoji="🚻",
        category="prn",
        required=False,
        estimated_minutes=10,
    ),
    Task(
        id="prn-emotional",
        label="Emotional Support",
        description="Provide comfort and reassurance",
        emoji="💝",
        category="prn",
        required=False,
        estimated_minutes=15,
    ),
)


def all_tasks(tasks: Sequence[Task] = DAILY_CHECKLIST) -> list[Task]:
    """All tasks in catalog order."""
    return list(tasks)


def task_by_id(task_id: str, tasks: Sequence[Task] = DAILY_CHECKLIST) -> Task | None:
    """Look up a task. Returns None when the id is not in the catalog."""
    for task in tasks:
        if task.id == task_id:
            return task
    return None


def tasks_by_category(*categories: str, tasks: Sequence[Task] = DAILY_CHECKLIST) -> list[Task]:
    """Tasks in any of ``categories``, keeping catalog order."""
    for category in categories:
        validate_category(category)
    return [t for t in tasks if t.category in categories]


def total_estimated_minutes(tasks: Iterable[Task]) -> int:
    return sum(t.estimated_minutes or 0 for t in tasks)


def pending_dependencies(
    task_id: str,
    completed_ids: set[str],
    tasks: Sequence[Task] = DAILY_CHECKLIST,
) -> list[str]:
    """Dependencies of a task that have not been completed yet.

    This is an ordering hint for display; completing a task whose
    dependencies are still pending is allowed.
    """
    task = task_by_id(task_id, tasks)
    if not task:
        return []
    return [dep for dep in task.dependencies if dep not in completed_ids]


def ready_tasks(tasks: Iterable[Task], completed_ids: set[str]) -> list[Task]:
    """Uncompleted tasks whose dependencies are all completed."""
    return [
        t for t in tasks
        if t.id not in completed_ids and all(dep in completed_ids for dep in t.dependencies)
    ]


def validate_catalog(tasks: Sequence[Task]) -> None:
    """Check ids are unique, fields are sane and dependencies form a DAG."""
    by_id: dict[str, Task] = {}
    for task in tasks:
        if task.id in by_id:
            raise ValidationError(f"Duplicate task id: {task.id}")
        validate_category(task.category)
        if task.estimated_minutes is not None and task.estimated_minutes < 0:
            raise ValidationError(f"Negative estimated minutes for task: {task.id}")
        by_id[task.id] = task

    for task in tasks:
        for dep in task.dependencies:
            if dep not in by_id:
                raise ValidationError(f"Task {task.id} depends on unknown task: {dep}")

    # Depth-first search with three colors; a grey node reached again is a cycle.
    state: dict[str, int] = {}

    def visit(task_id: str, path: list[str]):
        state[task_id] = 1
        path.append(task_id)
        for dep in by_id[task_id].dependencies:
            if state.get(dep) == 1:
                cycle = path[path.index(dep):] + [dep]
                raise ValidationError(f"Dependency cycle: {' -> '.join(cycle)}")
            if dep not in state:
                visit(dep, path)
        path.pop()
        state[task_id] = 2

    for task_id in by_id:
        if task_id not in state:
            visit(task_id, [])
