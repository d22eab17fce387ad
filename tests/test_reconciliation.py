"""Tests for cost recomputation and discrepancy reconciliation."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from fabbill.database.base import TotalWriter
from fabbill.domain.entities import (
    BillingBasis,
    BillingInputs,
    MachineUtilization,
    OperatingTime,
    ServiceLineItem,
    ServicePricingRule,
)
from fabbill.domain.errors import PersistenceError
from fabbill.domain.reconciliation import (
    ReconciliationService,
    build_total_update,
    can_write_back,
    detect_discrepancy,
    discrepancy_message,
    recompute,
)
from fabbill.utils.amount_parser import format_price


class RecordingWriter(TotalWriter):
    """Total writer that remembers updates, optionally failing."""

    def __init__(self, error=None):
        self.error = error
        self.updates = []

    def update_reservation_total(self, reservation_id, update):
        self.updates.append((reservation_id, update))
        if self.error is not None:
            raise self.error


@pytest.fixture
def ongoing_inputs(laser_line, laser_utilization, laser_pricing):
    """Ongoing laser cutting reservation with 90 minutes of use and a stored total of 90."""
    return BillingInputs(
        status="Ongoing",
        service_lines=(laser_line,),
        machine_utilizations=(laser_utilization,),
        pricing_rules=(laser_pricing,),
        stored_total=Decimal("90.00"),
    )


class TestDetectDiscrepancy:
    def test_sub_cent_difference_is_not_a_discrepancy(self):
        result = detect_discrepancy(Decimal("150.00"), Decimal("150.004"))

        assert not result.has_discrepancy

    def test_two_cent_difference_is_a_discrepancy(self):
        result = detect_discrepancy(Decimal("150.00"), Decimal("150.02"))

        assert result.has_discrepancy
        assert result.difference == Decimal("-0.02")

    def test_exactly_one_cent_is_within_tolerance(self):
        assert not detect_discrepancy(Decimal("150.00"), Decimal("150.01")).has_discrepancy

    def test_missing_stored_total_is_never_a_discrepancy(self):
        result = detect_discrepancy(Decimal("150.00"), None)

        assert not result.has_discrepancy
        assert result.stored_total is None
        assert result.difference is None

    def test_string_totals_are_accepted(self):
        assert detect_discrepancy("100.00", "90").has_discrepancy


class TestRecompute:
    def test_end_to_end_time_based(self, ongoing_inputs):
        breakdown = recompute(ongoing_inputs)

        line = breakdown.lines[0]
        assert breakdown.basis == BillingBasis.TIME_BASED
        assert line.actual_minutes == 90
        assert line.rounded_minutes == 120
        assert line.adjusted_cost == Decimal("100.00")
        assert breakdown.calculated_total == Decimal("100.00")
        assert format_price(breakdown.calculated_total) == "₱100.00"
        assert breakdown.has_discrepancy

        message = discrepancy_message(breakdown)
        assert "rounded operation times" in message
        assert "₱100.00" in message
        assert "₱90.00" in message

    def test_booked_basis_prices_rounded_booked_minutes(self):
        inputs = BillingInputs(
            status="Approved",
            service_lines=(
                ServiceLineItem(id="svc-1", service_name="3D Printing", booked_minutes=45),
            ),
            pricing_rules=(
                ServicePricingRule(service_name="3D Printing", cost_per_unit=Decimal("5"), unit="min"),
            ),
        )

        breakdown = recompute(inputs)

        line = breakdown.lines[0]
        assert breakdown.basis == BillingBasis.BOOKED
        assert line.rounded_booked_minutes == 60
        assert line.billed_minutes == 60
        assert line.adjusted_cost == Decimal("300.00")
        assert not breakdown.has_discrepancy
        assert discrepancy_message(breakdown) is None

    def test_booked_discrepancy_mentions_booked_times(self):
        inputs = BillingInputs(
            status="Pending Admin Approval",
            service_lines=(
                ServiceLineItem(id="svc-1", service_name="3D Printing", booked_minutes=45),
            ),
            pricing_rules=(
                ServicePricingRule(service_name="3D Printing", cost_per_unit=Decimal("5"), unit="min"),
            ),
            stored_total=Decimal("225.00"),
        )

        assert "rounded booked times" in discrepancy_message(recompute(inputs))

    def test_unbilled_status_uses_listed_cost(self):
        inputs = BillingInputs(
            status="Cancelled",
            service_lines=(
                ServiceLineItem(id="svc-1", service_name="Laser Cutting", listed_cost=Decimal("80.505")),
            ),
        )

        breakdown = recompute(inputs)

        assert breakdown.basis == BillingBasis.UNBILLED
        assert breakdown.calculated_total == Decimal("80.51")

    def test_overnight_interval_is_billed_as_four_hours(self, laser_line, laser_pricing):
        record = MachineUtilization(
            machine_name="Laser Cutter",
            service_name="Laser Cutting",
            operating_times=(OperatingTime(None, "22:00", "02:00"),),
        )
        inputs = BillingInputs(
            status="Completed",
            service_lines=(laser_line,),
            machine_utilizations=(record,),
            pricing_rules=(laser_pricing,),
        )

        line = recompute(inputs).lines[0]

        assert line.actual_minutes == 240
        assert line.rounded_minutes == 240
        assert line.adjusted_cost == Decimal("200.00")

    def test_duplicate_intervals_are_billed_once(self, laser_line, laser_pricing):
        entry = OperatingTime(None, "09:00", "09:40", "Ben")
        record = MachineUtilization(
            machine_name="Laser Cutter",
            service_name="Laser Cutting",
            operating_times=(entry, entry),
        )
        inputs = BillingInputs(
            status="Ongoing",
            service_lines=(laser_line,),
            machine_utilizations=(record,),
            pricing_rules=(laser_pricing,),
        )

        assert recompute(inputs).lines[0].actual_minutes == 40

    def test_empty_reservation_totals_zero(self):
        breakdown = recompute(BillingInputs(status="Ongoing", stored_total=Decimal("0")))

        assert breakdown.lines == ()
        assert breakdown.calculated_total == Decimal("0.00")
        assert not breakdown.has_discrepancy

    def test_total_is_sum_of_line_costs(self, laser_line, laser_utilization, laser_pricing):
        second = ServiceLineItem(
            id="svc-2", service_name="Consultation", listed_cost=Decimal("30")
        )
        inputs = BillingInputs(
            status="Ongoing",
            service_lines=(laser_line, second),
            machine_utilizations=(laser_utilization,),
            pricing_rules=(laser_pricing,),
        )

        breakdown = recompute(inputs)

        # Consultation: no usage, falls back to booked minutes (none) and costs nothing
        assert [line.adjusted_cost for line in breakdown.lines] == [Decimal("100.00"), Decimal("0.00")]
        assert breakdown.calculated_total == Decimal("100.00")
        assert breakdown.summary.total_actual_minutes == 90
        assert breakdown.summary.total_rounded_minutes == 120

    def test_recompute_is_pure(self, ongoing_inputs):
        assert recompute(ongoing_inputs) == recompute(ongoing_inputs)

    def test_generation_is_carried_through(self, ongoing_inputs):
        inputs = BillingInputs(
            status=ongoing_inputs.status,
            service_lines=ongoing_inputs.service_lines,
            generation=3,
        )

        assert recompute(inputs).generation == 3


class TestTotalUpdate:
    def test_payload_shape(self, ongoing_inputs):
        update = build_total_update(recompute(ongoing_inputs))

        assert update.to_json() == {
            "totalAmount": "100.00",
            "services": [{"id": "svc-1", "minutes": "120"}],
        }

    def test_booked_payload_uses_booked_minutes(self):
        inputs = BillingInputs(
            status="Approved",
            service_lines=(ServiceLineItem(id="svc-1", service_name="X", booked_minutes=45),),
        )

        update = build_total_update(recompute(inputs))

        assert update.services[0].minutes == "60"
        assert update.total_amount == "0.00"


class TestCanWriteBack:
    @pytest.mark.parametrize("status", ["Pending Admin Approval", "Approved", "Ongoing"])
    def test_editable_statuses(self, status):
        assert can_write_back(status, True, 1)

    @pytest.mark.parametrize("status", ["Pending Payment", "Paid", "Completed", "Cancelled"])
    def test_locked_statuses(self, status):
        assert not can_write_back(status, True, 1)

    def test_requires_permission_and_id(self):
        assert not can_write_back("Ongoing", False, 1)
        assert not can_write_back("Ongoing", True, None)

    def test_status_whitespace_is_ignored(self):
        assert can_write_back(" Ongoing ", True, 1)


class TestRefresh:
    def test_refresh_writes_back_discrepancy(self, ongoing_inputs):
        writer = RecordingWriter()
        service = ReconciliationService(writer=writer)

        outcome = service.refresh(ongoing_inputs, reservation_id=12, allow_fix=True)

        assert outcome.persisted
        assert outcome.succeeded
        assert outcome.message == "Database total updated successfully"
        assert writer.updates[0][0] == 12
        assert writer.updates[0][1].total_amount == "100.00"

    def test_refresh_increments_generation(self, ongoing_inputs):
        outcome = ReconciliationService().refresh(ongoing_inputs)

        assert outcome.breakdown.generation == ongoing_inputs.generation + 1

    def test_refresh_without_permission_only_recomputes(self, ongoing_inputs):
        writer = RecordingWriter()

        outcome = ReconciliationService(writer=writer).refresh(ongoing_inputs, reservation_id=12)

        assert not outcome.attempted_write
        assert outcome.breakdown.has_discrepancy
        assert outcome.message == "Cost breakdown recalculated"
        assert writer.updates == []

    def test_refresh_without_discrepancy_does_not_write(self, ongoing_inputs):
        writer = RecordingWriter()
        inputs = BillingInputs(
            status=ongoing_inputs.status,
            service_lines=ongoing_inputs.service_lines,
            machine_utilizations=ongoing_inputs.machine_utilizations,
            pricing_rules=ongoing_inputs.pricing_rules,
            stored_total=Decimal("100.00"),
        )

        outcome = ReconciliationService(writer=writer).refresh(inputs, 12, allow_fix=True)

        assert not outcome.attempted_write
        assert writer.updates == []

    def test_refresh_on_locked_status_does_not_write(self, ongoing_inputs):
        writer = RecordingWriter()
        inputs = BillingInputs(
            status="Completed",
            service_lines=ongoing_inputs.service_lines,
            machine_utilizations=ongoing_inputs.machine_utilizations,
            pricing_rules=ongoing_inputs.pricing_rules,
            stored_total=Decimal("90.00"),
        )

        outcome = ReconciliationService(writer=writer).refresh(inputs, 12, allow_fix=True)

        assert outcome.breakdown.has_discrepancy
        assert writer.updates == []

    def test_failed_write_keeps_local_breakdown(self, ongoing_inputs, caplog):
        writer = RecordingWriter(error=PersistenceError("Failed to update total: Unauthorized"))

        outcome = ReconciliationService(writer=writer).refresh(
            ongoing_inputs, reservation_id=12, allow_fix=True
        )

        assert outcome.attempted_write
        assert not outcome.persisted
        assert not outcome.succeeded
        assert "Unauthorized" in outcome.error
        assert outcome.message == "Failed to update database total"
        assert outcome.breakdown.calculated_total == Decimal("100.00")
        assert "Failed to update total for reservation 12" in caplog.text

    def test_database_error_is_captured(self, ongoing_inputs):
        writer = RecordingWriter(
            error=OperationalError("UPDATE reservations", {}, Exception("database is locked"))
        )

        outcome = ReconciliationService(writer=writer).refresh(
            ongoing_inputs, reservation_id=1, allow_fix=True
        )

        assert outcome.attempted_write
        assert not outcome.persisted
        assert "database is locked" in outcome.error
        assert outcome.message == "Failed to update database total"
        assert outcome.breakdown.calculated_total == Decimal("100.00")


class TestRefreshWithDatabase:
    def test_refresh_corrects_stored_total(self, temp_db, reservation_service, sample_reservation):
        inputs = reservation_service.load_billing_inputs(sample_reservation.id)

        outcome = ReconciliationService(writer=temp_db).refresh(
            inputs, reservation_id=sample_reservation.id, allow_fix=True
        )

        assert outcome.persisted
        reservation = reservation_service.get_reservation(sample_reservation.id)
        assert reservation.total_amount_due == Decimal("100.00")
        assert reservation_service.list_services(sample_reservation.id)[0].billed_minutes == 120

        again = reservation_service.load_billing_inputs(sample_reservation.id, generation=1)
        assert not recompute(again).has_discrepancy
