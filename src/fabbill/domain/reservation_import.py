"""Reservation JSON import domain service.

Reads reservation records exported by the booking application. Field names
follow that application's schema (``UserServices``, ``MachineUtilizations``,
``OperatingTimes``...). Arrays that are missing or not lists are treated as
empty, and a bad record is reported in the result instead of aborting the
import.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from fabbill.database.base import Database
from fabbill.domain.entities import (
    BillingInputs,
    DownTime,
    ImportResult,
    MachineUtilization,
    OperatingTime,
    ServiceLineItem,
    ServicePricingRule,
)
from fabbill.domain.errors import DomainError, ValidationError
from fabbill.domain.pricing import normalize_unit
from fabbill.domain.reservation import RESERVATION_STATUSES, ReservationService
from fabbill.domain.time_extraction import safe_int_minutes
from fabbill.utils.amount_parser import parse_cost, parse_optional_cost
from fabbill.utils.date_parser import parse_optional_date

logger = logging.getLogger(__name__)


def _records(payload: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = payload.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_minutes(value: Any) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return safe_int_minutes(value)


def _service_line(record: dict[str, Any], position: int) -> ServiceLineItem:
    return ServiceLineItem(
        id=_text(record.get("id")) or str(position),
        service_name=_text(record.get("ServiceAvail")) or "",
        equipment_name=_text(record.get("EquipmentAvail")) or "Not Specified",
        booked_minutes=_optional_minutes(record.get("MinsAvail")),
        listed_cost=parse_optional_cost(record.get("CostsAvail")),
    )


def _operating_time(record: dict[str, Any]) -> OperatingTime:
    return OperatingTime(
        date=parse_optional_date(record.get("OTDate")),
        start_time=_text(record.get("OTStartTime")),
        end_time=_text(record.get("OTEndTime")),
        operator_name=_text(record.get("OTMachineOp")),
        type_of_product=_text(record.get("OTTypeofProducts")),
    )


def _down_time(record: dict[str, Any]) -> DownTime:
    return DownTime(
        date=parse_optional_date(record.get("DTDate")),
        minutes=_optional_minutes(record.get("DTTime")),
        cause=_text(record.get("Cause")),
        operator_name=_text(record.get("DTMachineOp")),
        type_of_product=_text(record.get("DTTypeofProducts")),
    )


def _machine_utilization(record: dict[str, Any]) -> MachineUtilization:
    return MachineUtilization(
        machine_name=_text(record.get("Machine")),
        service_name=_text(record.get("ServiceName")),
        operating_times=tuple(_operating_time(t) for t in _records(record, "OperatingTimes")),
        down_times=tuple(_down_time(t) for t in _records(record, "DownTimes")),
    )


def _pricing_rule(record: dict[str, Any]) -> Optional[ServicePricingRule]:
    service_name = _text(record.get("Service"))
    if service_name is None:
        return None
    return ServicePricingRule(
        service_name=service_name,
        cost_per_unit=parse_cost(record.get("Costs")),
        unit=normalize_unit(_text(record.get("Per"))),
    )


def parse_reservation_payload(payload: dict[str, Any], generation: int = 0) -> BillingInputs:
    """Turn a reservation payload into a BillingInputs snapshot.

    Nothing is validated beyond shape; the billing engine tolerates
    missing and malformed figures.

    Args:
        payload: Decoded reservation JSON
        generation: Refresh counter to carry into the snapshot
    """
    if not isinstance(payload, dict):
        payload = {}

    rules = []
    for record in _records(payload, "servicePricing"):
        rule = _pricing_rule(record)
        if rule is not None:
            rules.append(rule)

    return BillingInputs(
        status=_text(payload.get("Status")) or "",
        service_lines=tuple(
            _service_line(record, position)
            for position, record in enumerate(_records(payload, "UserServices"))
        ),
        machine_utilizations=tuple(
            _machine_utilization(record) for record in _records(payload, "MachineUtilizations")
        ),
        pricing_rules=tuple(rules),
        stored_total=parse_optional_cost(payload.get("TotalAmntDue")),
        generation=generation,
    )


class ReservationImportService:
    """Service for importing reservation payloads into the local database."""

    def __init__(self, db: Database):
        """Initialize reservation import service.

        Args:
            db: Database instance
        """
        self.db = db
        self.reservation_service = ReservationService(db)

    def import_file(self, json_file_path: str) -> ImportResult:
        """Import a reservation from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the file is not valid JSON
        """
        json_path = Path(json_file_path)
        if not json_path.exists():
            raise FileNotFoundError(f"JSON file not found: {json_file_path}")

        with open(json_path, "r", encoding="utf-8-sig") as f:
            try:
                payload = json.load(f)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid reservation JSON: {e}")

        return self.import_reservation(payload)

    def import_reservation(self, payload: dict[str, Any]) -> ImportResult:
        """Import one reservation payload.

        Service lines are stored before the status is applied, so a
        reservation exported in a locked status still keeps its lines.

        Args:
            payload: Decoded reservation JSON

        Returns:
            ImportResult with counts and per-record error messages

        Raises:
            ValidationError: If the payload is not an object or has an unknown status
        """
        if not isinstance(payload, dict):
            raise ValidationError("Reservation payload must be a JSON object")

        status = _text(payload.get("Status")) or "Pending Admin Approval"
        if status not in RESERVATION_STATUSES:
            raise ValidationError(f"Unknown reservation status '{status}'")

        inputs = parse_reservation_payload(payload)
        errors = []

        reservation_id = self.db.create_reservation(
            status="Pending Admin Approval",
            total_amount_due=inputs.stored_total,
            requester=_text(payload.get("Name")),
        )

        services = 0
        raw_services = _records(payload, "UserServices")
        for position, (record, line) in enumerate(
            zip(raw_services, inputs.service_lines), start=1
        ):
            if not line.service_name:
                errors.append(f"Service {position}: Missing service name")
                continue
            try:
                self.reservation_service.add_service(
                    reservation_id,
                    service_name=line.service_name,
                    equipment_name=line.equipment_name,
                    booked_minutes=line.booked_minutes,
                    listed_cost=line.listed_cost,
                    unique_id=_text(record.get("id")),
                )
                services += 1
            except DomainError as e:
                errors.append(f"Service {position}: {e}")

        utilizations = 0
        for position, record in enumerate(inputs.machine_utilizations, start=1):
            if not record.machine_name:
                errors.append(f"Machine utilization {position}: Missing machine name")
                continue
            utilization_id = self.db.add_machine_utilization(
                reservation_id, record.machine_name, record.service_name
            )
            for entry in record.operating_times:
                self.db.add_operating_time(
                    utilization_id,
                    date=entry.date,
                    start_time=entry.start_time,
                    end_time=entry.end_time,
                    operator_name=entry.operator_name,
                    type_of_product=entry.type_of_product,
                )
            for entry in record.down_times:
                self.db.add_down_time(
                    utilization_id,
                    date=entry.date,
                    minutes=entry.minutes,
                    cause=entry.cause,
                    operator_name=entry.operator_name,
                    type_of_product=entry.type_of_product,
                )
            utilizations += 1

        pricing_rules = 0
        for rule in inputs.pricing_rules:
            if rule.cost_per_unit < 0:
                errors.append(f"Pricing rule '{rule.service_name}': Negative cost")
                continue
            self.db.set_pricing_rule(rule.service_name, rule.cost_per_unit, rule.unit)
            pricing_rules += 1

        if status != "Pending Admin Approval":
            self.db.update_reservation_status(reservation_id, status)

        if errors:
            logger.warning(
                "Imported reservation %s with %d error(s)", reservation_id, len(errors)
            )

        return ImportResult(
            reservation_id=reservation_id,
            services=services,
            machine_utilizations=utilizations,
            pricing_rules=pricing_rules,
            errors=tuple(errors),
        )
