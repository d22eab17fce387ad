"""Clients for external services."""

from fabbill.clients.reservation_api import ReservationApiClient

__all__ = ["ReservationApiClient"]
