"""Domain layer for fabbill application."""

_EXPORTS = {
    "ReservationService": "fabbill.domain.reservation",
    "ReservationImportService": "fabbill.domain.reservation_import",
    "PricingService": "fabbill.domain.pricing",
    "ReconciliationService": "fabbill.domain.reconciliation",
}

__all__ = list(_EXPORTS)


# Services import the database layer, which imports domain entities, so load them lazily
def __getattr__(name):
    if name in _EXPORTS:
        from importlib import import_module

        return getattr(import_module(_EXPORTS[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
