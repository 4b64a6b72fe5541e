from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_BACKEND_URL = "http://127.0.0.1:8080"
DEFAULT_SESSION_PATH = Path("~/.zkclear/session.json")
SESSION_KEY = "zkclear.wallet.session"

# Well-known development key; the gateway test fixtures use the same bytes.
DEMO_INTENT_KEY_HEX = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class DeskConfig:
    backend_url: str = DEFAULT_BACKEND_URL
    timeout_secs: float = 15.0
    intent_key_hex: str | None = None
    session_path: Path | None = DEFAULT_SESSION_PATH
    poll_interval_secs: float = 3.0

    @property
    def uses_fake_backend(self) -> bool:
        return self.backend_url == "fake"

    @classmethod
    def from_env(cls) -> DeskConfig:
        base_url = os.getenv("ZKCLEAR_BACKEND_URL", "").strip().rstrip("/") or DEFAULT_BACKEND_URL
        key_hex = os.getenv("ZKCLEAR_INTENT_KEY_HEX", "").strip() or None

        raw_path = os.getenv("ZKCLEAR_SESSION_PATH", "").strip()
        session_path: Path | None
        if raw_path.lower() == "none":
            session_path = None
        elif raw_path:
            session_path = Path(raw_path)
        else:
            session_path = DEFAULT_SESSION_PATH

        return cls(
            backend_url=base_url,
            timeout_secs=_float_env("ZKCLEAR_TIMEOUT_SECS", 15.0),
            intent_key_hex=key_hex,
            session_path=session_path.expanduser() if session_path is not None else None,
            poll_interval_secs=_float_env("ZKCLEAR_POLL_INTERVAL_SECS", 3.0),
        )
