"""Reservation domain service."""

from datetime import date
from decimal import Decimal
from typing import Optional

from fabbill.database.base import Database
from fabbill.domain.entities import (
    BillingInputs,
    MachineUtilization,
    Reservation as ReservationEntity,
    ServiceLineItem,
)
from fabbill.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    invalid_status_transition,
    machine_utilization_not_found,
    reservation_locked,
    reservation_not_found,
)
from fabbill.utils.time_parser import is_valid_time, normalize_time

INITIAL_STATUS = "Pending Admin Approval"

STATUS_TRANSITIONS = {
    "Pending Admin Approval": ("Approved", "Rejected"),
    "Approved": ("Ongoing", "Cancelled"),
    "Ongoing": ("Pending Payment", "Cancelled"),
    "Pending Payment": ("Paid",),
    "Paid": ("Completed",),
}

LOCKED_STATUSES = frozenset({"Pending Payment", "Paid", "Completed"})

RESERVATION_STATUSES = (
    "Pending Admin Approval",
    "Approved",
    "Ongoing",
    "Pending Payment",
    "Paid",
    "Completed",
    "Rejected",
    "Cancelled",
)


class ReservationService:
    """Service for managing reservations and their recorded usage."""

    def __init__(self, db: Database):
        """Initialize reservation service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_reservation(
        self,
        status: str = INITIAL_STATUS,
        total_amount_due: Optional[Decimal] = None,
        requester: Optional[str] = None,
    ) -> int:
        """Create a new reservation.

        Args:
            status: Initial status
            total_amount_due: Stored total, if one is already known
            requester: Name of the person making the reservation

        Returns:
            Reservation ID

        Raises:
            ValidationError: If status is unknown or the total is negative
        """
        if status not in RESERVATION_STATUSES:
            raise ValidationError(f"Unknown reservation status '{status}'")
        if total_amount_due is not None and total_amount_due < 0:
            raise ValidationError("Total amount due cannot be negative")

        return self.db.create_reservation(
            status=status, total_amount_due=total_amount_due, requester=requester
        )

    def get_reservation(self, reservation_id: int) -> Optional[ReservationEntity]:
        """Get reservation by ID.

        Args:
            reservation_id: Reservation ID

        Returns:
            Reservation entity or None if not found
        """
        return self.db.get_reservation(reservation_id)

    def list_reservations(self, status: Optional[str] = None) -> list[ReservationEntity]:
        """List reservations, optionally only those with the given status."""
        return self.db.list_reservations(status=status)

    def _require_reservation(self, reservation_id: int) -> ReservationEntity:
        reservation = self.db.get_reservation(reservation_id)
        if reservation is None:
            raise NotFoundError(reservation_not_found(reservation_id))
        return reservation

    def update_status(self, reservation_id: int, status: str) -> None:
        """Move a reservation to a new status.

        Args:
            reservation_id: Reservation ID
            status: Requested status

        Raises:
            NotFoundError: If reservation doesn't exist
            ConflictError: If the workflow doesn't allow the transition
        """
        reservation = self._require_reservation(reservation_id)
        if status not in STATUS_TRANSITIONS.get(reservation.status, ()):
            raise ConflictError(invalid_status_transition(reservation.status, status))
        self.db.update_reservation_status(reservation_id, status)

    def _require_editable(self, reservation_id: int) -> ReservationEntity:
        reservation = self._require_reservation(reservation_id)
        if reservation.status in LOCKED_STATUSES:
            raise ConflictError(reservation_locked(reservation_id, reservation.status))
        return reservation

    def add_service(
        self,
        reservation_id: int,
        service_name: str,
        equipment_name: Optional[str] = None,
        booked_minutes: Optional[int] = None,
        listed_cost: Optional[Decimal] = None,
        unique_id: Optional[str] = None,
    ) -> str:
        """Add a reserved service line.

        Args:
            reservation_id: Reservation ID
            service_name: Service name
            equipment_name: Machine(s) reserved; "Not Specified" when empty
            booked_minutes: Minutes booked at submission time
            listed_cost: Cost listed for the service
            unique_id: Optional explicit line ID

        Returns:
            Service line ID

        Raises:
            NotFoundError: If reservation doesn't exist
            ConflictError: If the reservation is locked or the ID is taken
            ValidationError: If name is empty or figures are negative
        """
        self._require_editable(reservation_id)

        if not service_name or not service_name.strip():
            raise ValidationError("Service name is required")
        if booked_minutes is not None and booked_minutes < 0:
            raise ValidationError("Booked minutes cannot be negative")
        if listed_cost is not None and listed_cost < 0:
            raise ValidationError("Listed cost cannot be negative")
        if unique_id is not None and self.db.service_line_exists(unique_id):
            raise ConflictError(f"Service line '{unique_id}' already exists")

        equipment = (equipment_name or "").strip() or "Not Specified"
        return self.db.add_service_line(
            reservation_id=reservation_id,
            service_name=service_name.strip(),
            equipment_name=equipment,
            booked_minutes=booked_minutes,
            listed_cost=listed_cost,
            unique_id=unique_id,
        )

    def list_services(self, reservation_id: int) -> list[ServiceLineItem]:
        """List service lines of a reservation."""
        self._require_reservation(reservation_id)
        return self.db.list_service_lines(reservation_id)

    def record_machine_utilization(
        self, reservation_id: int, machine_name: str, service_name: Optional[str] = None
    ) -> int:
        """Record that a machine was used under a reservation.

        Returns:
            Machine utilization ID

        Raises:
            NotFoundError: If reservation doesn't exist
            ValidationError: If machine name is empty
        """
        self._require_reservation(reservation_id)
        if not machine_name or not machine_name.strip():
            raise ValidationError("Machine name is required")
        return self.db.add_machine_utilization(
            reservation_id=reservation_id,
            machine_name=machine_name.strip(),
            service_name=service_name.strip() if service_name else None,
        )

    def _require_utilization(self, utilization_id: int) -> MachineUtilization:
        utilization = self.db.get_machine_utilization(utilization_id)
        if utilization is None:
            raise NotFoundError(machine_utilization_not_found(utilization_id))
        return utilization

    def add_operating_time(
        self,
        utilization_id: int,
        start_time: str,
        end_time: str,
        on_date: Optional[date] = None,
        operator_name: Optional[str] = None,
        type_of_product: Optional[str] = None,
    ) -> int:
        """Add an operating interval to a machine utilization.

        An end time before the start time is an overnight interval.

        Raises:
            NotFoundError: If utilization doesn't exist
            ValidationError: If a time is not HH:MM
        """
        self._require_utilization(utilization_id)
        for label, value in (("start", start_time), ("end", end_time)):
            if not is_valid_time(value):
                raise ValidationError(f"Invalid {label} time '{value}'. Expected HH:MM")

        return self.db.add_operating_time(
            utilization_id=utilization_id,
            date=on_date,
            start_time=normalize_time(start_time),
            end_time=normalize_time(end_time),
            operator_name=operator_name,
            type_of_product=type_of_product,
        )

    def add_down_time(
        self,
        utilization_id: int,
        minutes: int,
        on_date: Optional[date] = None,
        cause: Optional[str] = None,
        operator_name: Optional[str] = None,
        type_of_product: Optional[str] = None,
    ) -> int:
        """Add a down time to a machine utilization.

        Raises:
            NotFoundError: If utilization doesn't exist
            ValidationError: If minutes is negative
        """
        self._require_utilization(utilization_id)
        if minutes < 0:
            raise ValidationError("Down time minutes cannot be negative")

        return self.db.add_down_time(
            utilization_id=utilization_id,
            date=on_date,
            minutes=minutes,
            cause=cause,
            operator_name=operator_name,
            type_of_product=type_of_product,
        )

    def list_machine_utilizations(self, reservation_id: int) -> list[MachineUtilization]:
        """List machine utilizations of a reservation."""
        self._require_reservation(reservation_id)
        return self.db.list_machine_utilizations(reservation_id)

    def load_billing_inputs(self, reservation_id: int, generation: int = 0) -> BillingInputs:
        """Assemble everything a recompute needs for a reservation.

        Args:
            reservation_id: Reservation ID
            generation: Refresh counter to carry into the snapshot

        Returns:
            BillingInputs snapshot

        Raises:
            NotFoundError: If reservation doesn't exist
        """
        reservation = self._require_reservation(reservation_id)
        return BillingInputs(
            status=reservation.status,
            service_lines=tuple(self.db.list_service_lines(reservation_id)),
            machine_utilizations=tuple(self.db.list_machine_utilizations(reservation_id)),
            pricing_rules=tuple(self.db.list_pricing_rules()),
            stored_total=reservation.total_amount_due,
            generation=generation,
        )
