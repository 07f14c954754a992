"""ORM model package."""

from momentum.models.entities import (
    WBS,
    Activity,
    ActivityType,
    MomentumProject,
    Phase,
    ProgressEntry,
    ProjectStatus,
    Proposal,
)

__all__ = [
    "WBS",
    "Activity",
    "ActivityType",
    "MomentumProject",
    "Phase",
    "ProgressEntry",
    "ProjectStatus",
    "Proposal",
]
