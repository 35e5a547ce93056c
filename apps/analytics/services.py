"""
Labor cost aggregation.

Scheduled labor for a day is the sum, over every non-open shift, of
shift hours × hourly rate for each APPROVED assignee. Hours are counted once
per approved assignee (person-hours). Pending and rejected assignments never
count, and neither do open shifts.

Shift hours are end − start, plus 24 when the shift runs past midnight.
All arithmetic is Decimal; results are rounded to cents / hundredths.
"""

import datetime
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from apps.analytics.models import LaborCostRecord
from apps.scheduling.models import ShiftAssignment

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


@dataclass
class LaborCost:
    """Scheduled labor against sales for one location-day."""

    date: datetime.date
    scheduled_hours: Decimal = ZERO
    scheduled_cost: Decimal = ZERO
    projected_sales: Decimal = ZERO
    actual_sales: Decimal = ZERO

    @property
    def labor_percentage(self) -> Optional[Decimal]:
        """Scheduled cost as a percentage of sales (actual, else projected)."""
        sales = self.actual_sales or self.projected_sales
        if not sales:
            return None
        return (self.scheduled_cost / sales * 100).quantize(CENT, rounding=ROUND_HALF_UP)

    def as_dict(self) -> dict:
        percentage = self.labor_percentage
        return {
            "date": self.date.isoformat(),
            "scheduled_hours": str(self.scheduled_hours),
            "scheduled_cost": str(self.scheduled_cost),
            "projected_sales": str(self.projected_sales),
            "actual_sales": str(self.actual_sales),
            "labor_percentage": str(percentage) if percentage is not None else None,
        }


def labor_cost_for_date(location, date: datetime.date) -> LaborCost:
    """Aggregate approved, non-open scheduled labor and sales for one day."""
    assignments = ShiftAssignment.objects.filter(
        shift__location=location,
        shift__shift_date=date,
        shift__is_open_shift=False,
        approval_status=ShiftAssignment.Status.APPROVED,
    ).select_related("shift", "employee")

    hours = ZERO
    cost = ZERO
    for assignment in assignments:
        shift_hours = assignment.shift.duration_hours
        hours += shift_hours
        cost += shift_hours * (assignment.employee.hourly_rate or ZERO)

    record = LaborCostRecord.objects.filter(location=location, date=date).first()
    return LaborCost(
        date=date,
        scheduled_hours=hours.quantize(CENT, rounding=ROUND_HALF_UP),
        scheduled_cost=cost.quantize(CENT, rounding=ROUND_HALF_UP),
        projected_sales=record.projected_sales if record else ZERO,
        actual_sales=record.actual_sales if record else ZERO,
    )


def labor_cost_for_range(location, start: datetime.date, end: datetime.date) -> list[LaborCost]:
    """One LaborCost per day from start to end inclusive."""
    if end < start:
        return []
    days = (end - start).days + 1
    series = [labor_cost_for_date(location, start + datetime.timedelta(days=offset)) for offset in range(days)]
    logger.debug("Labor cost series for %s: %d day(s).", location.name, len(series))
    return series
