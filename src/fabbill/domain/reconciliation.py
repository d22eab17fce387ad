"""Cost recomputation and discrepancy reconciliation.

``recompute`` is a pure function of a ``BillingInputs`` snapshot: it always
rebuilds the whole list of adjusted service lines so totals stay consistent.
``ReconciliationService.refresh`` wraps it for user-triggered refreshes and,
when allowed, writes a corrected total back through a ``TotalWriter``.
"""

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from fabbill.database.base import TotalWriter
from fabbill.domain.config import BillingConfig
from fabbill.domain.entities import (
    AdjustedServiceLineItem,
    BillingBasis,
    BillingInputs,
    CostBreakdown,
    ExtractedTime,
    ReconciliationResult,
    RefreshOutcome,
    ServiceLineItem,
    ServiceMinutes,
    ServicePricingRule,
    TotalUpdate,
)
from fabbill.domain.errors import DomainError
from fabbill.domain.pricing import (
    DEFAULT_CONFIG,
    build_rate_card,
    price,
    rate_per_minute,
    resolve_rate,
    round_up_minutes,
)
from fabbill.domain.summary import summarize
from fabbill.domain.time_extraction import billing_basis, extract_times
from fabbill.utils.amount_parser import format_price, parse_cost, parse_optional_cost, round2

logger = logging.getLogger(__name__)

# Statuses whose stored total may still be corrected.
RECONCILABLE_STATUSES = frozenset({"Pending Admin Approval", "Approved", "Ongoing"})


def adjust_line(
    line: ServiceLineItem,
    extracted: ExtractedTime,
    basis: BillingBasis,
    rate_card: Mapping[str, ServicePricingRule],
    config: BillingConfig = DEFAULT_CONFIG,
) -> AdjustedServiceLineItem:
    """Round and price one service line under the given billing basis."""
    rounded = round_up_minutes(extracted.actual_minutes, config.minutes_per_hour)
    rounded_booked = round_up_minutes(extracted.booked_minutes, config.minutes_per_hour)
    rate, unit, rate_source = resolve_rate(line, rate_card, config)

    if basis == BillingBasis.TIME_BASED:
        cost = price(rate, rounded, unit, config)
    elif basis == BillingBasis.BOOKED:
        cost = price(rate, rounded_booked, unit, config)
    else:
        cost = round2(parse_cost(line.listed_cost))

    return AdjustedServiceLineItem(
        line=line,
        basis=basis,
        actual_minutes=extracted.actual_minutes,
        booked_minutes=extracted.booked_minutes,
        rounded_minutes=rounded,
        rounded_booked_minutes=rounded_booked,
        downtime_minutes=extracted.downtime_minutes,
        rate_per_unit=rate,
        pricing_unit=unit,
        rate_per_minute=rate_per_minute(rate, unit, config),
        adjusted_cost=cost,
        time_source=extracted.source,
        rate_source=rate_source,
    )


def detect_discrepancy(
    calculated_total: Any,
    stored_total: Any,
    tolerance: Decimal = Decimal("0.01"),
) -> ReconciliationResult:
    """Compare a recalculated total with the stored one.

    Both values are rounded to cents first; only a difference strictly
    greater than the tolerance counts. A missing stored total never does.
    """
    calculated = round2(parse_cost(calculated_total))
    stored = parse_optional_cost(stored_total)
    if stored is None:
        return ReconciliationResult(
            calculated_total=calculated, stored_total=None, has_discrepancy=False
        )
    has_discrepancy = abs(calculated - round2(stored)) > tolerance
    return ReconciliationResult(
        calculated_total=calculated, stored_total=stored, has_discrepancy=has_discrepancy
    )


def recompute(inputs: BillingInputs, config: BillingConfig = DEFAULT_CONFIG) -> CostBreakdown:
    """Recompute every service line, the total and the reconciliation state."""
    lines = tuple(inputs.service_lines or ())
    records = tuple(inputs.machine_utilizations or ())
    basis = billing_basis(inputs.status)

    extracted = extract_times(inputs.status, lines, records)
    rate_card = build_rate_card(inputs.pricing_rules or ())
    adjusted = tuple(
        adjust_line(line, times, basis, rate_card, config)
        for line, times in zip(lines, extracted)
    )

    total = sum((line.adjusted_cost for line in adjusted), Decimal("0.00"))
    reconciliation = detect_discrepancy(total, inputs.stored_total, config.discrepancy_tolerance)

    return CostBreakdown(
        status=inputs.status,
        basis=basis,
        lines=adjusted,
        calculated_total=reconciliation.calculated_total,
        reconciliation=reconciliation,
        summary=summarize(adjusted),
        generation=inputs.generation,
    )


def build_total_update(breakdown: CostBreakdown) -> TotalUpdate:
    """Build the write-back payload for a breakdown."""
    return TotalUpdate(
        total_amount=f"{round2(breakdown.calculated_total):.2f}",
        services=tuple(
            ServiceMinutes(id=line.line.id, minutes=str(line.billed_minutes))
            for line in breakdown.lines
        ),
    )


def discrepancy_message(
    breakdown: CostBreakdown, config: BillingConfig = DEFAULT_CONFIG
) -> Optional[str]:
    """Return the discrepancy banner text, or None when totals agree."""
    if not breakdown.has_discrepancy:
        return None

    if breakdown.basis == BillingBasis.TIME_BASED:
        source = "rounded operation times"
    elif breakdown.basis == BillingBasis.BOOKED:
        source = "rounded booked times"
    else:
        source = "listed service costs"

    calculated = format_price(breakdown.calculated_total, config.currency_symbol)
    stored = format_price(breakdown.reconciliation.stored_total, config.currency_symbol)
    return (
        f"The total recalculated from {source} ({calculated}) "
        f"differs from the stored total ({stored})."
    )


def can_write_back(status: str, allow_fix: bool, reservation_id: Optional[int]) -> bool:
    """Check whether a refresh may persist a corrected total."""
    return (
        bool(allow_fix)
        and reservation_id is not None
        and (status or "").strip() in RECONCILABLE_STATUSES
    )


class ReconciliationService:
    """Service for refreshing cost breakdowns and reconciling stored totals."""

    def __init__(
        self,
        writer: Optional[TotalWriter] = None,
        config: BillingConfig = DEFAULT_CONFIG,
    ):
        """Initialize reconciliation service.

        Args:
            writer: Destination for corrected totals; None disables write-back
            config: Billing configuration
        """
        self.writer = writer
        self.config = config

    def recompute(self, inputs: BillingInputs) -> CostBreakdown:
        """Recompute a breakdown with this service's configuration."""
        return recompute(inputs, self.config)

    def refresh(
        self,
        inputs: BillingInputs,
        reservation_id: Optional[int] = None,
        allow_fix: bool = False,
    ) -> RefreshOutcome:
        """Recompute and, if there is a discrepancy and fixing is allowed, persist.

        The returned outcome always carries the fresh breakdown; a failed
        write-back only sets ``error``.

        Args:
            inputs: Latest snapshot of billing inputs
            reservation_id: Reservation to update
            allow_fix: Whether the caller may correct the stored total

        Returns:
            RefreshOutcome describing the recompute and any write-back
        """
        breakdown = recompute(
            BillingInputs(
                status=inputs.status,
                service_lines=tuple(inputs.service_lines or ()),
                machine_utilizations=tuple(inputs.machine_utilizations or ()),
                pricing_rules=tuple(inputs.pricing_rules or ()),
                stored_total=inputs.stored_total,
                generation=inputs.generation + 1,
            ),
            self.config,
        )

        if (
            not breakdown.has_discrepancy
            or self.writer is None
            or not can_write_back(breakdown.status, allow_fix, reservation_id)
        ):
            return RefreshOutcome(breakdown=breakdown, message="Cost breakdown recalculated")

        update = build_total_update(breakdown)
        logger.info(
            "Updating total for reservation %s to %s", reservation_id, update.total_amount
        )
        try:
            self.writer.update_reservation_total(reservation_id, update)
        except (DomainError, SQLAlchemyError) as e:
            logger.error("Failed to update total for reservation %s: %s", reservation_id, e)
            return RefreshOutcome(
                breakdown=breakdown,
                attempted_write=True,
                persisted=False,
                error=str(e),
                message="Failed to update database total",
            )

        return RefreshOutcome(
            breakdown=breakdown,
            attempted_write=True,
            persisted=True,
            message="Database total updated successfully",
        )
