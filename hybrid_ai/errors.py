from __future__ import annotations


class HybridAIError(Exception):
    pass


class ConfigurationError(HybridAIError):
    """A credential or setting is absent or malformed.

    Raised only by helpers that validate explicitly; resolution and routing
    log it and degrade instead.
    """


class UnknownApproach(HybridAIError):
    pass


class BackendError(HybridAIError):
    kind: str = "BackendError"

    def __init__(
        self,
        message: str,
        *,
        approach: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.approach = approach
        self.phase = phase

    def tagged(self, *, approach: str | None = None, phase: str | None = None) -> BackendError:
        if approach is not None:
            self.approach = approach
        if phase is not None:
            self.phase = phase
        return self

    def __str__(self) -> str:
        context = []
        if self.approach:
            context.append(f"approach={self.approach}")
        if self.phase:
            context.append(f"phase={self.phase}")
        if context:
            return f"{self.kind} ({', '.join(context)}): {self.message}"
        return f"{self.kind}: {self.message}"


class BackendUnavailable(BackendError):
    kind = "BackendUnavailable"


class AuthError(BackendError):
    kind = "AuthError"


class RateLimited(BackendError):
    kind = "RateLimited"


class BackendTimeout(BackendError):
    kind = "Timeout"


class ProtocolError(BackendError):
    kind = "ProtocolError"
