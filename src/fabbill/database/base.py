"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from fabbill.domain.entities import (
    MachineUtilization,
    Reservation,
    ServiceLineItem,
    ServicePricingRule,
    TotalUpdate,
)


class TotalWriter(ABC):
    """Destination for reconciled reservation totals."""

    @abstractmethod
    def update_reservation_total(self, reservation_id: int, update: TotalUpdate) -> None:
        """Persist a recalculated total and per-service billed minutes.

        Raises:
            DomainError: If the update cannot be stored
        """
        pass


class Database(TotalWriter):
    """Abstract database interface for fabbill."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Reservation operations
    @abstractmethod
    def create_reservation(
        self,
        status: str,
        total_amount_due: Optional[Decimal] = None,
        requester: Optional[str] = None,
    ) -> int:
        """Create a reservation. Returns reservation ID."""
        pass

    @abstractmethod
    def get_reservation(self, reservation_id: int) -> Optional[Reservation]:
        """Get reservation by ID."""
        pass

    @abstractmethod
    def list_reservations(self, status: Optional[str] = None) -> list[Reservation]:
        """List reservations, optionally filtered by status."""
        pass

    @abstractmethod
    def update_reservation_status(self, reservation_id: int, status: str) -> None:
        """Update reservation status."""
        pass

    # Service line operations
    @abstractmethod
    def add_service_line(
        self,
        reservation_id: int,
        service_name: str,
        equipment_name: str = "Not Specified",
        booked_minutes: Optional[int] = None,
        listed_cost: Optional[Decimal] = None,
        unique_id: Optional[str] = None,
    ) -> str:
        """Add a service line to a reservation. Returns the line's unique ID."""
        pass

    @abstractmethod
    def list_service_lines(self, reservation_id: int) -> list[ServiceLineItem]:
        """List service lines of a reservation in insertion order."""
        pass

    @abstractmethod
    def service_line_exists(self, unique_id: str) -> bool:
        """Check if a service line with the given unique ID exists."""
        pass

    # Machine utilization operations
    @abstractmethod
    def add_machine_utilization(
        self, reservation_id: int, machine_name: str, service_name: Optional[str] = None
    ) -> int:
        """Add a machine utilization record. Returns its ID."""
        pass

    @abstractmethod
    def get_machine_utilization(self, utilization_id: int) -> Optional[MachineUtilization]:
        """Get machine utilization with its operating and down times."""
        pass

    @abstractmethod
    def list_machine_utilizations(self, reservation_id: int) -> list[MachineUtilization]:
        """List machine utilizations of a reservation with nested times."""
        pass

    @abstractmethod
    def add_operating_time(
        self,
        utilization_id: int,
        date: Optional[date],
        start_time: Optional[str],
        end_time: Optional[str],
        operator_name: Optional[str] = None,
        type_of_product: Optional[str] = None,
    ) -> int:
        """Add an operating time to a machine utilization. Returns its ID."""
        pass

    @abstractmethod
    def add_down_time(
        self,
        utilization_id: int,
        date: Optional[date],
        minutes: Optional[int],
        cause: Optional[str] = None,
        operator_name: Optional[str] = None,
        type_of_product: Optional[str] = None,
    ) -> int:
        """Add a down time to a machine utilization. Returns its ID."""
        pass

    # Pricing operations
    @abstractmethod
    def set_pricing_rule(self, service_name: str, cost_per_unit: Decimal, unit: str) -> int:
        """Create or replace the pricing rule for a service. Returns rule ID."""
        pass

    @abstractmethod
    def get_pricing_rule(self, service_name: str) -> Optional[ServicePricingRule]:
        """Get pricing rule by exact service name."""
        pass

    @abstractmethod
    def list_pricing_rules(self) -> list[ServicePricingRule]:
        """List all pricing rules."""
        pass

    @abstractmethod
    def delete_pricing_rule(self, service_name: str) -> None:
        """Delete the pricing rule for a service."""
        pass
