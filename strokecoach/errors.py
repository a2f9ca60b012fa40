from typing import Literal

ErrorKind = Literal["AuthError", "NetworkError", "ProviderResponseError", "PreconditionError"]


class StrokeCoachError(Exception):
    kind: str = "StrokeCoachError"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class AuthError(StrokeCoachError):
    """No credential configured, or the provider rejected it."""

    kind = "AuthError"


class NetworkError(StrokeCoachError):
    """Transport failure or non-auth HTTP error from the provider."""

    kind = "NetworkError"


class ProviderResponseError(StrokeCoachError):
    """The provider answered, but the payload was empty or malformed."""

    kind = "ProviderResponseError"


class PreconditionError(StrokeCoachError):
    """Submission without an identified user. Raised before any side effect."""

    kind = "PreconditionError"


class AttemptStateError(StrokeCoachError):
    kind = "AttemptStateError"
