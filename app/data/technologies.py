"""Static definitions for tracked technologies.

Enumerations for the record fields, the status cycle used when a technology
is advanced without an explicit target, and the seed collection used on first
run when the durable slot is empty.
"""

from __future__ import annotations

import enum


class TechStatus(str, enum.Enum):
    not_started = "not-started"
    in_progress = "in-progress"
    completed = "completed"


class TechCategory(str, enum.Enum):
    frontend = "frontend"
    backend = "backend"
    mobile = "mobile"
    devops = "devops"
    database = "database"
    tools = "tools"


class TechDifficulty(str, enum.Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


# Order walked by cycle_status; wraps from completed back to not-started.
STATUS_CYCLE: tuple[TechStatus, ...] = (
    TechStatus.not_started,
    TechStatus.in_progress,
    TechStatus.completed,
)


def next_status(status: TechStatus) -> TechStatus:
    """Return the status that follows ``status`` in the study cycle."""
    index = STATUS_CYCLE.index(TechStatus(status))
    return STATUS_CYCLE[(index + 1) % len(STATUS_CYCLE)]


# ── SEED COLLECTION ───────────────────────────────────────────────────────────

SEED_TECHNOLOGIES: list[dict] = [
    {
        "id": 1,
        "title": "React Components",
        "description": "Learning the basic building blocks of a React UI",
        "status": TechStatus.completed.value,
        "notes": "",
        "category": TechCategory.frontend.value,
    },
    {
        "id": 2,
        "title": "JSX Syntax",
        "description": "Getting comfortable with the JSX syntax",
        "status": TechStatus.in_progress.value,
        "notes": "",
        "category": TechCategory.frontend.value,
    },
    {
        "id": 3,
        "title": "State Management",
        "description": "Working with component state",
        "status": TechStatus.not_started.value,
        "notes": "",
        "category": TechCategory.frontend.value,
    },
    {
        "id": 4,
        "title": "React Hooks",
        "description": "Studying the core hooks: useState, useEffect",
        "status": TechStatus.not_started.value,
        "notes": "",
        "category": TechCategory.frontend.value,
    },
    {
        "id": 5,
        "title": "Banana Label Peeling",
        "description": "Long and painstaking manual labour",
        "status": TechStatus.in_progress.value,
        "notes": "",
        "category": TechCategory.backend.value,
    },
]
