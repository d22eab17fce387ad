"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as an illegal status transition."""


class PersistenceError(DomainError):
    """Writing reconciled figures back to storage failed."""


def reservation_not_found(reservation_id: int) -> str:
    """Return message for missing reservation."""
    return f"Reservation {reservation_id} not found"


def machine_utilization_not_found(utilization_id: int) -> str:
    """Return message for missing machine utilization."""
    return f"Machine utilization {utilization_id} not found"


def pricing_rule_not_found(service_name: str) -> str:
    """Return message for missing pricing rule."""
    return f"No pricing rule for service '{service_name}'"


def invalid_status_transition(current: str, requested: str) -> str:
    """Return message for a status change the workflow does not allow."""
    return f"Cannot change reservation status from '{current}' to '{requested}'"


def reservation_locked(reservation_id: int, status: str) -> str:
    """Return message when a reservation can no longer be edited."""
    return (
        f"Reservation {reservation_id} is in {status} status. "
        "Details can no longer be edited."
    )


def unknown_pricing_unit(unit: str) -> str:
    """Return message for an unsupported pricing unit."""
    return f"Unknown pricing unit '{unit}'. Supported units: min, hour, day"
