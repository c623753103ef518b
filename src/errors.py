"""Error taxonomy for the forward-request signing pipeline.

Every error is fatal for the request that raised it. ``stage`` tells the
caller where the pipeline stopped, ``field`` which input was at fault.
"""

from typing import Optional


class KuruSignerError(Exception):
    stage = "internal"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"[{self.stage}:{self.field}] {self.message}"
        return f"[{self.stage}] {self.message}"


class InvalidIntent(KuruSignerError):
    """Missing or contradictory order fields, unknown type/side."""

    stage = "intent"


class EncodingError(KuruSignerError):
    """Value does not fit the declared ABI type."""

    stage = "encode"


class MalformedHexError(KuruSignerError):
    stage = "hex"


class SigningError(KuruSignerError):
    """Unusable private key or a signature that does not recover."""

    stage = "sign"


class ConfigurationError(KuruSignerError):
    stage = "config"
