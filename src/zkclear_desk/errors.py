from __future__ import annotations


class DeskError(Exception):
    """Base class for every failure surfaced by the desk client."""


class TransportError(DeskError):
    """Network or parse failure. Retrying the triggering action is always safe."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DomainRejection(DeskError):
    """Well-formed refusal from the backend (bad signature, compliance fail, ...)."""

    def __init__(self, error_code: str | None, reason: str, status_code: int | None = None) -> None:
        self.error_code = error_code
        self.reason = reason
        self.status_code = status_code
        super().__init__(self.display())

    def display(self) -> str:
        prefix = f"[{self.error_code}] " if self.error_code else ""
        return f"{prefix}{self.reason}"


class SignatureDeclined(DomainRejection):
    def __init__(self, reason: str = "wallet signature was declined") -> None:
        super().__init__("USER_DECLINED_SIGNATURE", reason)


class SessionError(DeskError):
    """Expired, unauthenticated or unrecognized-role session."""


class NoSessionError(SessionError):
    def __init__(self, message: str = "wallet session missing; connect wallet and verify access first") -> None:
        super().__init__(message)


class CryptoConfigError(DeskError):
    """Symmetric key configuration is unusable. Retrying will not help."""


class OrchestrationRejected(DomainRejection):
    """Backend answered but refused the orchestration; ``result`` holds the parsed body when there was one."""

    def __init__(
        self,
        error_code: str | None,
        reason: str,
        status_code: int | None = None,
        result: object | None = None,
    ) -> None:
        super().__init__(error_code, reason, status_code)
        self.result = result
