"""
Analytics models for ShiftGuard.

LaborCostRecord stores the sales figures that scheduled labor is compared
against. Sales come from outside ShiftGuard (POS exports, manual entry);
scheduled hours and cost are always computed from the schedule itself.
"""

from decimal import Decimal

from django.db import models


class LaborCostRecord(models.Model):
    """Projected and actual sales for one location on one day."""

    location = models.ForeignKey(
        "locations.Location",
        on_delete=models.CASCADE,
        related_name="labor_cost_records",
    )
    date = models.DateField()
    projected_sales = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    actual_sales = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Labor Cost Record"
        verbose_name_plural = "Labor Cost Records"
        ordering = ["-date"]
        constraints = [
            models.UniqueConstraint(fields=["location", "date"], name="unique_labor_record_per_day")
        ]

    def __str__(self) -> str:
        return f"{self.location.name} {self.date}: projected {self.projected_sales}, actual {self.actual_sales}"
