from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from momentum.models.entities import WBS, Activity, ActivityType, Phase, ProgressEntry
from momentum.services.rollup import (
    ProgressStatus,
    RollupMetrics,
    build_rollup,
    completed_by_activity,
    labor_constants,
    percent_complete,
    rollup_activity,
    status_from_percent,
)


def _wbs(pool_id: int) -> WBS:
    return WBS(id=uuid.uuid4(), proposal_id=uuid.uuid4(), wbs_pool_id=pool_id, name=f"WBS {pool_id}")


def _phase(wbs: WBS, pool_id: int) -> Phase:
    return Phase(
        id=uuid.uuid4(),
        proposal_id=wbs.proposal_id,
        wbs_id=wbs.id,
        phase_pool_id=pool_id,
        description=f"Phase {pool_id}",
    )


def _activity(
    phase: Phase,
    *,
    quantity: str,
    craft: str | None = "0.5",
    welder: str | None = "0.1",
    activity_type: ActivityType = ActivityType.LABOR,
) -> Activity:
    return Activity(
        id=uuid.uuid4(),
        proposal_id=phase.proposal_id,
        wbs_id=phase.wbs_id,
        phase_id=phase.id,
        type=activity_type,
        description="activity",
        quantity=Decimal(quantity),
        unit="EA",
        craft_constant=Decimal(craft) if craft is not None else None,
        welder_constant=Decimal(welder) if welder is not None else None,
    )


def _entry(activity: Activity, quantity: str, entry_date: date = date(2026, 3, 2)) -> ProgressEntry:
    return ProgressEntry(
        id=uuid.uuid4(),
        project_id=uuid.uuid4(),
        activity_id=activity.id,
        wbs_id=activity.wbs_id,
        phase_id=activity.phase_id,
        entry_date=entry_date,
        quantity_completed=Decimal(quantity),
    )


def test_activity_metrics_partial_progress() -> None:
    wbs = _wbs(100)
    activity = _activity(_phase(wbs, 10), quantity="100")

    node = rollup_activity(activity, Decimal("40"))

    assert node.metrics.craft_mh == Decimal("50")
    assert node.metrics.weld_mh == Decimal("10")
    assert node.metrics.total_mh == Decimal("60")
    assert node.metrics.earned_mh == Decimal("24")
    assert node.metrics.percent_complete == 40
    assert node.metrics.status is ProgressStatus.IN_PROGRESS
    assert node.quantity_remaining == Decimal("60")


def test_activity_metrics_full_and_over_completion() -> None:
    activity = _activity(_phase(_wbs(100), 10), quantity="100")

    full = rollup_activity(activity, Decimal("100"))
    assert full.metrics.percent_complete == 100
    assert full.metrics.status is ProgressStatus.COMPLETE

    over = rollup_activity(activity, Decimal("120"))
    assert over.metrics.earned_mh == Decimal("72")
    assert over.metrics.percent_complete == 120
    assert over.metrics.status is ProgressStatus.COMPLETE
    assert over.quantity_remaining == Decimal("0")
    assert over.metrics.remaining_mh == Decimal("0")


def test_non_labor_and_unpriced_activities_carry_no_man_hours() -> None:
    phase = _phase(_wbs(100), 10)
    material = _activity(phase, quantity="50", activity_type=ActivityType.MATERIAL)
    missing_constants = _activity(phase, quantity="5", craft=None, welder="0.2")

    assert labor_constants(material) == (Decimal("0"), Decimal("0"))
    assert labor_constants(missing_constants) == (Decimal("0"), Decimal("0"))
    assert rollup_activity(missing_constants, Decimal("5")).metrics.total_mh == Decimal("0")


def test_percent_is_zero_without_budget_and_rounds_half_up() -> None:
    assert percent_complete(Decimal("0"), Decimal("0")) == 0
    assert percent_complete(Decimal("5"), Decimal("0")) == 0
    assert percent_complete(Decimal("34"), Decimal("80")) == 43
    assert percent_complete(Decimal("1"), Decimal("8")) == 13
    assert percent_complete(Decimal("1"), Decimal("3")) == 33


def test_status_thresholds() -> None:
    assert status_from_percent(0) is ProgressStatus.NOT_STARTED
    assert status_from_percent(1) is ProgressStatus.IN_PROGRESS
    assert status_from_percent(99) is ProgressStatus.IN_PROGRESS
    assert status_from_percent(100) is ProgressStatus.COMPLETE
    assert status_from_percent(135) is ProgressStatus.COMPLETE


def test_completed_quantities_sum_across_dates() -> None:
    activity = _activity(_phase(_wbs(100), 10), quantity="100")
    entries = [
        _entry(activity, "40", date(2026, 3, 2)),
        _entry(activity, "10", date(2026, 3, 3)),
    ]

    assert completed_by_activity(entries) == {activity.id: Decimal("50")}
    assert completed_by_activity(entries, exclude_date=date(2026, 3, 3)) == {activity.id: Decimal("40")}


def test_build_rollup_folds_levels_and_recomputes_percent() -> None:
    piping = _wbs(100)
    steel = _wbs(200)
    welds = _phase(piping, 10)
    supports = _phase(piping, 20)
    empty_phase = _phase(steel, 30)
    weld = _activity(welds, quantity="100")
    shoe = _activity(supports, quantity="10", craft="2", welder="0")
    material = _activity(welds, quantity="500", activity_type=ActivityType.MATERIAL)

    rollup = build_rollup(
        wbs_items=[piping, steel],
        phases=[welds, supports, empty_phase],
        activities=[weld, shoe, material],
        entries=[_entry(weld, "40"), _entry(shoe, "5", date(2026, 3, 3)), _entry(material, "100")],
    )

    piping_node = rollup.find_wbs(piping.id)
    steel_node = rollup.find_wbs(steel.id)
    assert piping_node is not None and steel_node is not None
    assert [len(phase.activities) for phase in piping_node.phases] == [1, 1]
    assert piping_node.metrics.total_mh == Decimal("80")
    assert piping_node.metrics.earned_mh == Decimal("34")
    # 34 / 80 is 42.5%; the average of the phase percents (40, 50) would be 45.
    assert piping_node.metrics.percent_complete == 43
    assert steel_node.metrics.total_mh == Decimal("0")
    assert steel_node.metrics.status is ProgressStatus.NOT_STARTED
    assert rollup.metrics.total_mh == Decimal("80")
    assert rollup.metrics.percent_complete == 43


def test_project_totals_equal_sum_of_children() -> None:
    wbs_items = [_wbs(100), _wbs(200)]
    phases = [_phase(wbs_items[0], 10), _phase(wbs_items[0], 20), _phase(wbs_items[1], 10)]
    activities = [
        _activity(phases[0], quantity="12", craft="1.25", welder="0.75"),
        _activity(phases[1], quantity="7", craft="3", welder="0"),
        _activity(phases[2], quantity="40", craft="0.333333", welder="0.1"),
    ]
    entries = [
        _entry(activities[0], "3"),
        _entry(activities[0], "2.5", date(2026, 3, 4)),
        _entry(activities[2], "11"),
    ]

    rollup = build_rollup(wbs_items=wbs_items, phases=phases, activities=activities, entries=entries)

    summed = RollupMetrics()
    for wbs_node in rollup.wbs_items:
        phase_sum = RollupMetrics()
        for phase_node in wbs_node.phases:
            activity_sum = RollupMetrics()
            for node in phase_node.activities:
                activity_sum.absorb(node.metrics)
            assert activity_sum == phase_node.metrics
            phase_sum.absorb(phase_node.metrics)
        assert phase_sum == wbs_node.metrics
        summed.absorb(wbs_node.metrics)
    assert summed == rollup.metrics


def test_activities_outside_scope_are_excluded() -> None:
    wbs = _wbs(100)
    phase = _phase(wbs, 10)
    stray_phase = _phase(_wbs(300), 10)
    kept = _activity(phase, quantity="10")
    stray = _activity(stray_phase, quantity="1000")

    rollup = build_rollup(wbs_items=[wbs], phases=[phase], activities=[kept, stray], entries=[])

    assert rollup.metrics.total_mh == Decimal("6")
    assert [node.activity.id for node in rollup.iter_activities()] == [kept.id]


def test_as_of_date_splits_previous_and_todays_quantities() -> None:
    wbs = _wbs(100)
    phase = _phase(wbs, 10)
    activity = _activity(phase, quantity="100")
    idle = _activity(phase, quantity="4")

    rollup = build_rollup(
        wbs_items=[wbs],
        phases=[phase],
        activities=[activity, idle],
        entries=[_entry(activity, "40", date(2026, 3, 2)), _entry(activity, "10", date(2026, 3, 3))],
        as_of_date=date(2026, 3, 3),
    )

    nodes = {node.activity.id: node for node in rollup.iter_activities()}
    day = nodes[activity.id].day
    assert day is not None
    assert day.previous_total == Decimal("40")
    assert day.todays_entry == Decimal("10")
    assert day.new_total == Decimal("50")
    assert day.remaining == Decimal("50")
    assert nodes[idle.id].day.todays_entry == Decimal("0")
