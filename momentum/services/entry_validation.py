"""Advisory quantity checks applied to an entry batch before it is saved."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from momentum.services.rollup import ZERO, EntryDayMetrics


class IssueSeverity(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(slots=True, frozen=True)
class QuantityIssue:
    activity_id: UUID
    severity: IssueSeverity
    code: str
    message: str


@dataclass(slots=True)
class ValidationReport:
    issues: list[QuantityIssue]

    @property
    def has_errors(self) -> bool:
        return any(issue.severity is IssueSeverity.ERROR for issue in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(issue.severity is IssueSeverity.WARNING for issue in self.issues)


def validate_quantities(
    submissions: Iterable[tuple[UUID, Decimal]],
    *,
    budgets: dict[UUID, Decimal],
    day_metrics: dict[UUID, EntryDayMetrics],
) -> ValidationReport:
    """Check submitted quantities against prior progress and budget.

    The submitted quantity replaces the activity's entry for the day, so the
    resulting cumulative total is ``previous_total + submitted``. Exceeding the
    budgeted quantity is a warning only; negative values are errors.
    Activities missing from ``budgets`` are skipped, the save path ignores them.
    """

    issues: list[QuantityIssue] = []
    for activity_id, quantity in submissions:
        if quantity < ZERO:
            issues.append(
                QuantityIssue(
                    activity_id=activity_id,
                    severity=IssueSeverity.ERROR,
                    code="negative_quantity",
                    message="Quantity completed cannot be negative.",
                )
            )
            continue

        budget = budgets.get(activity_id)
        if budget is None:
            continue

        day = day_metrics.get(activity_id)
        previous_total = day.previous_total if day is not None else ZERO
        new_total = previous_total + quantity
        if quantity > ZERO and new_total > budget:
            issues.append(
                QuantityIssue(
                    activity_id=activity_id,
                    severity=IssueSeverity.WARNING,
                    code="exceeds_remaining",
                    message=(
                        f"New total {new_total.normalize():f} exceeds budgeted quantity "
                        f"{budget.normalize():f} by {(new_total - budget).normalize():f}."
                    ),
                )
            )

    return ValidationReport(issues=issues)
