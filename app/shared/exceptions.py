"""Custom exception hierarchy for WakaWars."""


class WakaWarsError(Exception):
    """Base exception for all WakaWars errors."""

    pass


class ConfigError(WakaWarsError):
    """Raised when configuration validation fails."""

    pass


class ProviderError(WakaWarsError):
    """Raised when a WakaTime response cannot be used.

    Never escapes the provider client: it is converted into an ``error`` status.
    """

    pass


class StoreError(WakaWarsError):
    """Raised when persistence operations fail."""

    pass


class TransientStoreError(StoreError):
    """Raised for connectivity-class store failures that are safe to retry."""

    pass


class PermanentStoreError(StoreError):
    """Raised for store failures that must not be retried (constraints, bad input)."""

    pass


class SyncError(WakaWarsError):
    """Raised when a sync engine is misused (e.g. started twice)."""

    pass
