"""Progress rollup engine.

Pure functions that join budgeted activities with dated progress entries and
fold man-hour metrics up the estimate hierarchy (activity -> phase -> WBS ->
project). Nothing here touches the database: callers fetch the rows for a
scope once and hand them over, so the number of queries per rollup does not
depend on the size of the tree.

Percentages are recomputed at every level from that level's own summed
earned/total man-hours, never from the children's rounded percentages.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from momentum.models.entities import WBS, Activity, ActivityType, Phase, ProgressEntry

LABOR_TYPES = frozenset({ActivityType.LABOR, ActivityType.CUSTOM_LABOR})

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class ProgressStatus(str, enum.Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"


def is_labor_bearing(activity: Activity) -> bool:
    return activity.type in LABOR_TYPES


def labor_constants(activity: Activity) -> tuple[Decimal, Decimal]:
    """Return ``(craft, welder)`` man-hours per unit for an activity.

    Non-labor activities and labor activities with missing constants
    (partially migrated estimates) contribute nothing.
    """

    if not is_labor_bearing(activity):
        return ZERO, ZERO
    if activity.craft_constant is None or activity.welder_constant is None:
        return ZERO, ZERO
    return Decimal(activity.craft_constant), Decimal(activity.welder_constant)


def activity_total_mh(activity: Activity) -> Decimal:
    craft, welder = labor_constants(activity)
    return Decimal(activity.quantity) * (craft + welder)


def activity_earned_mh(activity: Activity, completed_quantity: Decimal) -> Decimal:
    craft, welder = labor_constants(activity)
    return Decimal(completed_quantity) * (craft + welder)


def percent_complete(earned_mh: Decimal, total_mh: Decimal) -> int:
    if total_mh == ZERO:
        return 0
    ratio = earned_mh * HUNDRED / total_mh
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def status_from_percent(percent: int) -> ProgressStatus:
    if percent == 0:
        return ProgressStatus.NOT_STARTED
    if percent >= 100:
        return ProgressStatus.COMPLETE
    return ProgressStatus.IN_PROGRESS


def completed_by_activity(
    entries: Iterable[ProgressEntry],
    *,
    exclude_date: date | None = None,
) -> dict[UUID, Decimal]:
    """Sum completed quantity per activity across all entry dates."""

    totals: dict[UUID, Decimal] = {}
    for entry in entries:
        if exclude_date is not None and entry.entry_date == exclude_date:
            continue
        totals[entry.activity_id] = totals.get(entry.activity_id, ZERO) + Decimal(entry.quantity_completed)
    return totals


def quantities_on_date(entries: Iterable[ProgressEntry], entry_date: date) -> dict[UUID, Decimal]:
    return {
        entry.activity_id: Decimal(entry.quantity_completed)
        for entry in entries
        if entry.entry_date == entry_date
    }


@dataclass(slots=True)
class RollupMetrics:
    """Man-hour accumulator shared by every level of the tree."""

    craft_mh: Decimal = ZERO
    weld_mh: Decimal = ZERO
    earned_mh: Decimal = ZERO

    @property
    def total_mh(self) -> Decimal:
        return self.craft_mh + self.weld_mh

    @property
    def remaining_mh(self) -> Decimal:
        return max(ZERO, self.total_mh - self.earned_mh)

    @property
    def percent_complete(self) -> int:
        return percent_complete(self.earned_mh, self.total_mh)

    @property
    def status(self) -> ProgressStatus:
        return status_from_percent(self.percent_complete)

    def absorb(self, other: RollupMetrics) -> None:
        self.craft_mh += other.craft_mh
        self.weld_mh += other.weld_mh
        self.earned_mh += other.earned_mh


@dataclass(slots=True)
class EntryDayMetrics:
    """Per-activity split between prior cumulative progress and one day's entry."""

    previous_total: Decimal
    todays_entry: Decimal
    new_total: Decimal
    remaining: Decimal


@dataclass(slots=True)
class ActivityRollup:
    activity: Activity
    quantity_complete: Decimal
    metrics: RollupMetrics
    day: EntryDayMetrics | None = None

    @property
    def quantity(self) -> Decimal:
        return Decimal(self.activity.quantity)

    @property
    def quantity_remaining(self) -> Decimal:
        return max(ZERO, self.quantity - self.quantity_complete)


@dataclass(slots=True)
class PhaseRollup:
    phase: Phase
    activities: list[ActivityRollup] = field(default_factory=list)
    metrics: RollupMetrics = field(default_factory=RollupMetrics)


@dataclass(slots=True)
class WBSRollup:
    wbs: WBS
    phases: list[PhaseRollup] = field(default_factory=list)
    metrics: RollupMetrics = field(default_factory=RollupMetrics)


@dataclass(slots=True)
class ProjectRollup:
    wbs_items: list[WBSRollup] = field(default_factory=list)
    metrics: RollupMetrics = field(default_factory=RollupMetrics)

    def find_wbs(self, wbs_id: UUID) -> WBSRollup | None:
        return next((item for item in self.wbs_items if item.wbs.id == wbs_id), None)

    def find_phase(self, phase_id: UUID) -> PhaseRollup | None:
        for item in self.wbs_items:
            for phase in item.phases:
                if phase.phase.id == phase_id:
                    return phase
        return None

    def iter_activities(self) -> Iterable[ActivityRollup]:
        for item in self.wbs_items:
            for phase in item.phases:
                yield from phase.activities


def rollup_activity(
    activity: Activity,
    completed_quantity: Decimal,
    *,
    todays_entry: Decimal | None = None,
) -> ActivityRollup:
    craft, welder = labor_constants(activity)
    quantity = Decimal(activity.quantity)
    metrics = RollupMetrics(
        craft_mh=quantity * craft,
        weld_mh=quantity * welder,
        earned_mh=activity_earned_mh(activity, completed_quantity),
    )
    node = ActivityRollup(activity=activity, quantity_complete=completed_quantity, metrics=metrics)
    if todays_entry is not None:
        node.day = EntryDayMetrics(
            previous_total=completed_quantity - todays_entry,
            todays_entry=todays_entry,
            new_total=completed_quantity,
            remaining=node.quantity_remaining,
        )
    return node


def build_rollup(
    *,
    wbs_items: Iterable[WBS],
    phases: Iterable[Phase],
    activities: Iterable[Activity],
    entries: Iterable[ProgressEntry],
    as_of_date: date | None = None,
) -> ProjectRollup:
    """Fold activities and entries for one scope into a rollup tree.

    ``entries`` must already be limited to the project (and to the WBS or
    phase when the scope narrows). Non-labor activities are ignored.
    Activities whose phase is not part of ``phases`` have no parent in the
    scope and are left out of every total.
    """

    entry_rows = list(entries)
    completed = completed_by_activity(entry_rows)
    todays = quantities_on_date(entry_rows, as_of_date) if as_of_date is not None else {}

    activities_by_phase: dict[UUID, list[ActivityRollup]] = {}
    for activity in activities:
        if not is_labor_bearing(activity):
            continue
        node = rollup_activity(
            activity,
            completed.get(activity.id, ZERO),
            todays_entry=todays.get(activity.id, ZERO) if as_of_date is not None else None,
        )
        activities_by_phase.setdefault(activity.phase_id, []).append(node)

    phases_by_wbs: dict[UUID, list[PhaseRollup]] = {}
    for phase in phases:
        phase_node = PhaseRollup(phase=phase, activities=activities_by_phase.get(phase.id, []))
        for activity_node in phase_node.activities:
            phase_node.metrics.absorb(activity_node.metrics)
        phases_by_wbs.setdefault(phase.wbs_id, []).append(phase_node)

    project = ProjectRollup()
    for wbs in wbs_items:
        wbs_node = WBSRollup(wbs=wbs, phases=phases_by_wbs.get(wbs.id, []))
        for phase_node in wbs_node.phases:
            wbs_node.metrics.absorb(phase_node.metrics)
        project.wbs_items.append(wbs_node)
        project.metrics.absorb(wbs_node.metrics)

    return project
