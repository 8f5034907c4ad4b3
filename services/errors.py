# services/errors.py


class WindFarmError(Exception):
    """Base class for errors raised by the wind farm services."""


class ValidationError(WindFarmError):
    """Bad request or subscription parameters."""


class NotFoundError(WindFarmError):
    pass


class ConflictError(WindFarmError):
    pass


class GenerationError(WindFarmError):
    """Reading generation failed. Generation is total, so this signals a bug."""


class PersistenceError(WindFarmError):
    """The store is unavailable or rejected a write."""


class TransportError(WindFarmError):
    """Writing to a push channel failed or the peer went away."""
