"""
Smart Kandang - Error types

Lookup misses (unknown device, unknown user) are not errors: registry
methods return None for them.
"""


class KandangError(Exception):
    """Base class for all application errors."""


class MalformedPayload(KandangError):
    """Telemetry body could not be decoded or normalized. Discarded, never retried."""


class PersistenceFailure(KandangError):
    """Store unavailable or constraint violated. The operation is aborted."""


class DispatchFailure(KandangError):
    """Outbound message was rejected by the messaging provider."""
