"""
Booking application client for writing reconciled totals.

Sends the recalculated total and per-service billed minutes to the
application's admin update-total endpoint.
"""

import logging
from typing import Any, Optional

import requests

from fabbill.database.base import TotalWriter
from fabbill.domain.entities import TotalUpdate
from fabbill.domain.errors import PersistenceError

logger = logging.getLogger(__name__)


class ReservationApiClient(TotalWriter):
    """Write reservation totals over HTTP."""

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        """
        Initialize with the booking application's base URL.

        Args:
            base_url: Application root, e.g. "https://fablab.example.com"
            timeout: Request timeout in seconds; None waits indefinitely

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def update_total_url(self, reservation_id: int) -> str:
        return f"{self.base_url}/api/admin/update-total/{reservation_id}"

    def update_reservation_total(self, reservation_id: int, update: TotalUpdate) -> Any:
        """
        Send a recalculated total for a reservation.

        Args:
            reservation_id: Reservation to update
            update: Total and per-service minutes

        Returns:
            Decoded JSON response body, or its text if it isn't JSON

        Raises:
            PersistenceError: On connection failure or a non-2xx response
        """
        url = self.update_total_url(reservation_id)
        try:
            response = requests.patch(url, json=update.to_json(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Update total request failed for reservation {reservation_id}: {e}")
            raise PersistenceError(f"Failed to update total: {e}")

        try:
            body = response.json()
        except ValueError:
            body = response.text

        if not response.ok:
            error_msg = None
            if isinstance(body, dict):
                error_msg = body.get("error") or body.get("message")
            if not error_msg:
                error_msg = response.reason or f"HTTP {response.status_code}"
            logger.error(
                f"Update total rejected for reservation {reservation_id} "
                f"({response.status_code}): {error_msg}"
            )
            raise PersistenceError(f"Failed to update total: {error_msg}")

        logger.info(
            f"Total for reservation {reservation_id} updated to {update.total_amount}"
        )
        return body
