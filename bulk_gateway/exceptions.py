"""Exceptions raised by the bulk gateway itself.

Engine errors are never raised from here: they are folded into the
per-item results. Transport errors from the client are re-raised as is.
"""


class GatewayError(Exception):
    """Base class for all gateway exceptions."""


class InputValidationError(GatewayError, ValueError):
    """Raised when caller input is rejected before any request is sent."""


class GatewayClosedError(GatewayError):
    """Raised when an operation is issued after the gateway was closed."""
