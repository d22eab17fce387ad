"""Shared pytest fixtures for fabbill tests."""

import tempfile
import os
from decimal import Decimal
from pathlib import Path
import pytest

from fabbill.database.factories import create_sqlite_database
from fabbill.domain.entities import (
    MachineUtilization,
    OperatingTime,
    ServiceLineItem,
    ServicePricingRule,
)
from fabbill.domain.pricing import PricingService
from fabbill.domain.reservation import ReservationService
from fabbill.domain.reservation_import import ReservationImportService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def reservation_service(temp_db):
    """Create a ReservationService with a temporary database."""
    return ReservationService(temp_db)


@pytest.fixture
def pricing_service(temp_db):
    """Create a PricingService with a temporary database."""
    return PricingService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a ReservationImportService with a temporary database."""
    return ReservationImportService(temp_db)


@pytest.fixture
def laser_line():
    """Laser Cutting service line reserved on the laser cutter."""
    return ServiceLineItem(
        id="svc-1",
        service_name="Laser Cutting",
        equipment_name="Laser Cutter",
        booked_minutes=60,
    )


@pytest.fixture
def laser_utilization():
    """Laser cutter usage with two intervals of 40 and 50 minutes."""
    return MachineUtilization(
        machine_name="Laser Cutter",
        service_name="Laser Cutting",
        operating_times=(
            OperatingTime(date=None, start_time="09:00", end_time="09:40"),
            OperatingTime(date=None, start_time="10:00", end_time="10:50"),
        ),
    )


@pytest.fixture
def laser_pricing():
    """Laser Cutting at 50 per hour."""
    return ServicePricingRule(service_name="Laser Cutting", cost_per_unit=Decimal("50"), unit="hour")


@pytest.fixture
def sample_reservation(reservation_service, pricing_service):
    """Create an ongoing reservation with one laser cutting line and 90 minutes of usage."""
    reservation_id = reservation_service.create_reservation(
        status="Ongoing", total_amount_due=Decimal("90.00"), requester="Ana Cruz"
    )
    reservation_service.add_service(
        reservation_id,
        service_name="Laser Cutting",
        equipment_name="Laser Cutter",
        booked_minutes=60,
        unique_id="svc-laser",
    )
    utilization_id = reservation_service.record_machine_utilization(
        reservation_id, "Laser Cutter", "Laser Cutting"
    )
    reservation_service.add_operating_time(utilization_id, "09:00", "09:40")
    reservation_service.add_operating_time(utilization_id, "10:00", "10:50")
    pricing_service.set_rule("Laser Cutting", Decimal("50"), "hour")
    return reservation_service.get_reservation(reservation_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
