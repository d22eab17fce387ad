"""Domain model entities for fabbill.

These are pure data classes representing reservation and billing concepts,
independent of database schema. The billing engine only ever sees these
entities, so the same computation runs on rows loaded from SQLite or on a
reservation payload received from the booking application.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class BillingBasis(Enum):
    """Which time figure is authoritative for billing."""

    TIME_BASED = "time"
    BOOKED = "booked"
    UNBILLED = "unbilled"


@dataclass(frozen=True)
class Reservation:
    """Reservation domain entity."""

    id: int
    status: str
    total_amount_due: Optional[Decimal]
    requester: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class ServiceLineItem:
    """One reserved service instance on a reservation."""

    id: str
    service_name: str
    equipment_name: str = "Not Specified"
    booked_minutes: Optional[int] = None
    listed_cost: Optional[Decimal] = None
    billed_minutes: Optional[int] = None


@dataclass(frozen=True)
class OperatingTime:
    """Actual usage interval of a machine."""

    date: Optional[date]
    start_time: Optional[str]
    end_time: Optional[str]
    operator_name: Optional[str] = None
    type_of_product: Optional[str] = None

    def dedupe_key(self) -> tuple:
        return (self.date, self.start_time, self.end_time, self.operator_name)


@dataclass(frozen=True)
class DownTime:
    """Recorded unusable minutes of a machine during a reservation."""

    date: Optional[date]
    minutes: Optional[int]
    cause: Optional[str] = None
    operator_name: Optional[str] = None
    type_of_product: Optional[str] = None

    def dedupe_key(self) -> tuple:
        return (
            self.date,
            self.type_of_product,
            self.minutes,
            self.cause,
            self.operator_name,
        )


@dataclass(frozen=True)
class MachineUtilization:
    """One machine assignment under a reservation."""

    machine_name: Optional[str]
    service_name: Optional[str]
    operating_times: tuple[OperatingTime, ...] = ()
    down_times: tuple[DownTime, ...] = ()
    id: Optional[int] = None


@dataclass(frozen=True)
class ServicePricingRule:
    """Rate card entry for a service."""

    service_name: str
    cost_per_unit: Decimal
    unit: str = "hour"
    id: Optional[int] = None


@dataclass(frozen=True)
class ExtractedTime:
    """Minutes figures derived for one service line by the time extractor."""

    line_id: str
    actual_minutes: int
    booked_minutes: int
    downtime_minutes: int
    source: str
    machine_name: Optional[str] = None


@dataclass(frozen=True)
class AdjustedServiceLineItem:
    """A service line enriched with billed minutes and computed cost."""

    line: ServiceLineItem
    basis: BillingBasis
    actual_minutes: int
    booked_minutes: int
    rounded_minutes: int
    rounded_booked_minutes: int
    downtime_minutes: int
    rate_per_unit: Decimal
    pricing_unit: str
    rate_per_minute: Decimal
    adjusted_cost: Decimal
    time_source: str
    rate_source: str

    @property
    def billed_minutes(self) -> int:
        """Rounded minutes for the current billing basis."""
        if self.basis == BillingBasis.TIME_BASED:
            return self.rounded_minutes
        return self.rounded_booked_minutes


@dataclass(frozen=True)
class ReconciliationResult:
    """Comparison of a recalculated total against the stored one."""

    calculated_total: Decimal
    stored_total: Optional[Decimal]
    has_discrepancy: bool

    @property
    def difference(self) -> Optional[Decimal]:
        if self.stored_total is None:
            return None
        return self.calculated_total - self.stored_total


@dataclass(frozen=True)
class BillingSummary:
    """Aggregate minute totals over a cost breakdown."""

    total_actual_minutes: int = 0
    total_rounded_minutes: int = 0
    total_booked_minutes: int = 0
    total_rounded_booked_minutes: int = 0
    total_downtime_minutes: int = 0


@dataclass(frozen=True)
class CostBreakdown:
    """Result of one full recompute of a reservation's billing."""

    status: str
    basis: BillingBasis
    lines: tuple[AdjustedServiceLineItem, ...]
    calculated_total: Decimal
    reconciliation: ReconciliationResult
    summary: BillingSummary
    generation: int = 0

    @property
    def has_discrepancy(self) -> bool:
        return self.reconciliation.has_discrepancy


@dataclass(frozen=True)
class ServiceMinutes:
    """Per-line minutes figure sent with a total update."""

    id: str
    minutes: str


@dataclass(frozen=True)
class TotalUpdate:
    """Write-back payload for a reconciled reservation total."""

    total_amount: str
    services: tuple[ServiceMinutes, ...] = ()

    def to_json(self) -> dict[str, Any]:
        """Return the JSON body expected by the update-total endpoint."""
        return {
            "totalAmount": self.total_amount,
            "services": [{"id": s.id, "minutes": s.minutes} for s in self.services],
        }


@dataclass(frozen=True)
class RefreshOutcome:
    """Outcome of a user-triggered refresh.

    ``breakdown`` is always the freshly computed local state, whether or not
    the write-back succeeded.
    """

    breakdown: CostBreakdown
    attempted_write: bool = False
    persisted: bool = False
    error: Optional[str] = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ImportResult:
    """Result of importing a reservation payload."""

    reservation_id: Optional[int]
    services: int = 0
    machine_utilizations: int = 0
    pricing_rules: int = 0
    errors: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BillingInputs:
    """Snapshot of everything a recompute reads.

    ``generation`` counts user-triggered refreshes; it is carried through to
    the resulting breakdown and has no effect on the figures.
    """

    status: str
    service_lines: tuple[ServiceLineItem, ...] = ()
    machine_utilizations: tuple[MachineUtilization, ...] = ()
    pricing_rules: tuple[ServicePricingRule, ...] = ()
    stored_total: Optional[Decimal] = None
    generation: int = 0
