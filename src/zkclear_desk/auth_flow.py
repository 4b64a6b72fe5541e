"""
Challenge-response wallet login.

The flow asks the backend for a one-time login message, has the wallet sign
it, and trades the signature for a bearer session. Sessions are persisted in a
SessionStore and revalidated with the backend on startup.
"""
from __future__ import annotations

import enum
import inspect
import logging
import re
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, Union

from .backend_client import DeskBackend
from .domain_types import LoginResult, WalletSession
from .errors import DeskError, DomainRejection, SessionError, SignatureDeclined
from .role_gate import normalize_role, panels_for
from .session_store import SessionStore, is_session_expired

logger = logging.getLogger(__name__)

SignFn = Callable[[str], Union[Awaitable[str], str]]


class WalletSigner(Protocol):
    """Signs a login message with key material the desk never sees. May be async; may raise when the user declines."""

    def sign_message(self, message: str) -> Union[Awaitable[str], str]: ...


@dataclass(frozen=True)
class FunctionSigner:
    """Adapts a plain (sync or async) callable to WalletSigner."""

    sign: SignFn

    def sign_message(self, message: str) -> Union[Awaitable[str], str]:
        return self.sign(message)


_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class AuthState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"
    ERROR = "error"


def normalize_wallet_address(address: str) -> str:
    value = (address or "").strip()
    if not _ADDRESS_RE.match(value):
        raise DomainRejection("INVALID_WALLET_ADDRESS", f"invalid wallet address: {address!r}")
    return value.lower()


async def _call_signer(signer: WalletSigner, message: str) -> str:
    try:
        result = signer.sign_message(message)
        if inspect.isawaitable(result):
            result = await result
    except DeskError:
        raise
    except Exception as exc:
        # Wallets report a user rejection as an arbitrary provider error.
        raise SignatureDeclined(f"wallet signature was declined: {exc}") from exc
    if not result:
        raise SignatureDeclined()
    return str(result)


class AuthFlow:
    def __init__(
        self,
        backend: DeskBackend,
        store: SessionStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.store = store
        self.clock = clock
        self.state = AuthState.ANONYMOUS
        self.error: str | None = None

    def _fail(self, exc: DeskError) -> None:
        self.state = AuthState.ERROR
        self.error = str(exc)

    def _authenticated(self, session: WalletSession) -> LoginResult:
        self.state = AuthState.AUTHENTICATED
        self.error = None
        return LoginResult(
            wallet_address=session.wallet_address,
            role=session.role,
            panels=panels_for(session.role),
        )

    @property
    def session(self) -> WalletSession | None:
        if self.state is not AuthState.AUTHENTICATED:
            return None
        return self.store.load()

    async def restore(self) -> LoginResult | None:
        session = self.store.load()
        if session is None:
            self.state = AuthState.ANONYMOUS
            return None
        if is_session_expired(session.expires_at, self.clock()):
            logger.info("Stored session for %s expired; clearing", session.wallet_address)
            self.store.clear()
            self.state = AuthState.ANONYMOUS
            return None

        try:
            me = await self.backend.fetch_me(session.access_token)
        except DomainRejection as exc:
            if exc.status_code in (401, 403):
                self.store.clear()
                err: DeskError = SessionError(str(exc))
                self._fail(err)
                raise err from exc
            self._fail(exc)
            raise
        except DeskError as exc:
            self._fail(exc)
            raise

        if not me.authenticated:
            self.store.clear()
            err = SessionError(me.reason or "wallet session is not authenticated")
            self._fail(err)
            raise err

        role = normalize_role(me.role)
        if role is None:
            self.store.clear()
            err = SessionError(f"unsupported role from backend: {me.role}")
            self._fail(err)
            raise err

        refreshed = WalletSession(
            access_token=session.access_token,
            wallet_address=me.wallet_address or session.wallet_address,
            role=role,
            expires_at=session.expires_at,
        )
        self.store.save(refreshed)
        logger.info("Restored session for %s as %s", refreshed.wallet_address, role)
        return self._authenticated(refreshed)

    async def verify(self, address: str, signer: WalletSigner) -> LoginResult:
        self.store.clear()
        self.state = AuthState.VERIFYING
        self.error = None
        try:
            wallet = normalize_wallet_address(address)
            challenge = await self.backend.request_nonce(wallet)
            if not challenge.accepted:
                raise DomainRejection(challenge.error_code, challenge.reason or "failed to request wallet nonce")

            signature = await _call_signer(signer, challenge.message)

            token = await self.backend.verify_signature(wallet, signature)
            if not token.accepted:
                raise DomainRejection(token.error_code, token.reason or "wallet verification failed")
            if not token.access_token:
                raise DomainRejection("INVALID_TOKEN", "wallet verification returned no access token")
            role = normalize_role(token.role)
            if role is None:
                raise DomainRejection("UNSUPPORTED_ROLE", f"unsupported role from backend: {token.role}")
        except DeskError as exc:
            logger.info("Wallet verification failed: %s", exc)
            self._fail(exc)
            raise

        session = WalletSession(
            access_token=token.access_token,
            wallet_address=token.wallet_address or wallet,
            role=role,
            expires_at=token.expires_at,
        )
        self.store.save(session)
        logger.info("Wallet %s authenticated as %s", session.wallet_address, role)
        return self._authenticated(session)

    def logout(self) -> None:
        self.store.clear()
        self.state = AuthState.ANONYMOUS
        self.error = None

    def wallet_changed(self, address: str | None) -> bool:
        """Log out when the connected wallet no longer matches the session. Returns True if it did."""
        session = self.session
        if session is None:
            return False
        if address and address.strip().lower() == session.wallet_address.lower():
            return False
        logger.info("Connected wallet changed; dropping session for %s", session.wallet_address)
        self.logout()
        return True
