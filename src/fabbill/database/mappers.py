"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the billing engine keeps working
on plain entities when the storage schema changes.
"""

from fabbill.domain import entities as domain
from fabbill.database.models import (
    Reservation as ORMReservation,
    ServiceLine as ORMServiceLine,
    MachineUtilization as ORMMachineUtilization,
    OperatingTime as ORMOperatingTime,
    DownTime as ORMDownTime,
    ServicePricing as ORMServicePricing,
)


def reservation_to_domain(orm_reservation: ORMReservation) -> domain.Reservation:
    """Convert SQLAlchemy Reservation model to domain Reservation entity."""
    return domain.Reservation(
        id=orm_reservation.id,
        status=orm_reservation.status,
        total_amount_due=orm_reservation.total_amount_due,
        requester=orm_reservation.requester,
        created_at=orm_reservation.created_at,
    )


def service_line_to_domain(orm_line: ORMServiceLine) -> domain.ServiceLineItem:
    """Convert SQLAlchemy ServiceLine model to domain ServiceLineItem entity."""
    return domain.ServiceLineItem(
        id=orm_line.unique_id,
        service_name=orm_line.service_name,
        equipment_name=orm_line.equipment_name,
        booked_minutes=orm_line.booked_minutes,
        listed_cost=orm_line.listed_cost,
        billed_minutes=orm_line.billed_minutes,
    )


def operating_time_to_domain(orm_time: ORMOperatingTime) -> domain.OperatingTime:
    """Convert SQLAlchemy OperatingTime model to domain OperatingTime entity."""
    return domain.OperatingTime(
        date=orm_time.date,
        start_time=orm_time.start_time,
        end_time=orm_time.end_time,
        operator_name=orm_time.operator_name,
        type_of_product=orm_time.type_of_product,
    )


def down_time_to_domain(orm_time: ORMDownTime) -> domain.DownTime:
    """Convert SQLAlchemy DownTime model to domain DownTime entity."""
    return domain.DownTime(
        date=orm_time.date,
        minutes=orm_time.minutes,
        cause=orm_time.cause,
        operator_name=orm_time.operator_name,
        type_of_product=orm_time.type_of_product,
    )


def machine_utilization_to_domain(
    orm_util: ORMMachineUtilization,
) -> domain.MachineUtilization:
    """Convert SQLAlchemy MachineUtilization model, with its times, to a domain entity."""
    return domain.MachineUtilization(
        id=orm_util.id,
        machine_name=orm_util.machine_name,
        service_name=orm_util.service_name,
        operating_times=tuple(operating_time_to_domain(t) for t in orm_util.operating_times),
        down_times=tuple(down_time_to_domain(t) for t in orm_util.down_times),
    )


def pricing_rule_to_domain(orm_pricing: ORMServicePricing) -> domain.ServicePricingRule:
    """Convert SQLAlchemy ServicePricing model to domain ServicePricingRule entity."""
    return domain.ServicePricingRule(
        id=orm_pricing.id,
        service_name=orm_pricing.service_name,
        cost_per_unit=orm_pricing.cost_per_unit,
        unit=orm_pricing.unit,
    )
