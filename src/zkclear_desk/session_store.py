"""Single-slot durable storage for the current wallet session."""
from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .config import SESSION_KEY
from .domain_types import WalletSession
from .role_gate import normalize_role

logger = logging.getLogger(__name__)


class SessionBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


@dataclass
class MemorySessionBackend:
    values: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


class FileSessionBackend:
    """Key-value slots kept in one JSON file, replaced atomically on write."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable session file %s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


def is_session_expired(expires_at: int, now: float | None = None) -> bool:
    current = int(time.time() if now is None else now)
    return current >= expires_at


class SessionStore:
    """
    Holds at most one WalletSession.

    With no backend every load returns None and writes are dropped, so callers
    see "no session" instead of an error.
    """

    def __init__(self, backend: SessionBackend | None, key: str = SESSION_KEY) -> None:
        self.backend = backend
        self.key = key

    def save(self, session: WalletSession) -> None:
        if self.backend is None:
            return
        self.backend.set(self.key, json.dumps(session.to_record()))

    def load(self) -> WalletSession | None:
        if self.backend is None:
            return None
        raw = self.backend.get(self.key)
        if not raw:
            return None
        try:
            record = json.loads(raw)
            role = normalize_role(record["role"])
            if role is None:
                return None
            return WalletSession(
                access_token=str(record["accessToken"]),
                wallet_address=str(record["walletAddress"]),
                role=role,
                expires_at=int(record["expiresAt"]),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed session record under %s", self.key)
            return None

    def clear(self) -> None:
        if self.backend is None:
            return
        self.backend.delete(self.key)
