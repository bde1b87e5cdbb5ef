class FleetError(Exception):
    """Base class for errors raised by the repositories and the store."""

class ValidationError(FleetError):
    """Input rejected before anything was written."""

class NotFound(FleetError):
    pass

class StoreError(FleetError):
    """Backend unreachable or a store operation failed."""

class DecodeError(FleetError):
    """A stored record could not be parsed."""
