from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from zkclear_desk.app_cli import _build_backend, _build_store
from zkclear_desk.backend_client import FakeDeskBackend
from zkclear_desk.config import DeskConfig
from zkclear_desk.domain_types import BuiltIntent, DealerIntent
from zkclear_desk.errors import DomainRejection, TransportError
from zkclear_desk.http_backend_client import HttpDeskBackend

BASE = "http://localhost:8080"


def _response(status: int, payload: Any = None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


def _dealer(counterparty: str, country: str | None = None) -> DealerIntent:
    built = BuiltIntent(
        encrypted_payload="cGF5bG9hZA==",
        signature="ab" * 64,
        signer_public_key="cd" * 32,
        nonce=f"nonce-{counterparty}",
        timestamp=1_700_000_000,
    )
    return DealerIntent(built=built, counterparty_id=counterparty, country=country, wallet_address="")


def test_config_defaults() -> None:
    with patch.dict(os.environ, {}, clear=True):
        config = DeskConfig.from_env()
    assert config.backend_url == "http://127.0.0.1:8080"
    assert config.timeout_secs == 15.0
    assert config.intent_key_hex is None
    assert config.poll_interval_secs == 3.0
    assert config.session_path is not None and config.session_path.name == "session.json"


def test_config_reads_environment() -> None:
    env = {
        "ZKCLEAR_BACKEND_URL": "https://desk.example///",
        "ZKCLEAR_TIMEOUT_SECS": "not-a-number",
        "ZKCLEAR_INTENT_KEY_HEX": "0x" + "11" * 32,
        "ZKCLEAR_SESSION_PATH": "none",
        "ZKCLEAR_POLL_INTERVAL_SECS": "0.5",
    }
    with patch.dict(os.environ, env, clear=True):
        config = DeskConfig.from_env()
    assert config.backend_url == "https://desk.example"
    assert config.timeout_secs == 15.0
    assert config.intent_key_hex == "0x" + "11" * 32
    assert config.session_path is None
    assert config.poll_interval_secs == 0.5


def test_build_backend_selects_fake_or_http(tmp_path: Path) -> None:
    assert isinstance(_build_backend(DeskConfig(backend_url="fake")), FakeDeskBackend)

    backend = _build_backend(DeskConfig(backend_url=BASE, timeout_secs=30.0))
    assert isinstance(backend, HttpDeskBackend)
    assert backend.base_url == BASE
    assert backend.timeout == 30.0

    assert _build_store(DeskConfig(session_path=None)).backend is None
    assert _build_store(DeskConfig(session_path=tmp_path / "s.json")).backend is not None


@pytest.mark.asyncio
async def test_nonce_request_posts_wallet_address() -> None:
    backend = HttpDeskBackend(base_url=BASE + "/")
    payload = {"accepted": True, "wallet_address": "0xab", "nonce": "n1", "message": "sign me", "expires_at": 10}
    with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = _response(200, payload)
        challenge = await backend.request_nonce("0xab")

    assert mock_post.call_args.args[0] == f"{BASE}/v1/auth/wallet/nonce"
    assert mock_post.call_args.kwargs["json"] == {"wallet_address": "0xab"}
    assert "Authorization" not in mock_post.call_args.kwargs["headers"]
    assert challenge.accepted and challenge.message == "sign me"


@pytest.mark.asyncio
async def test_me_sends_bearer_token() -> None:
    backend = HttpDeskBackend(base_url=BASE)
    with patch.object(httpx.AsyncClient, "get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(200, {"authenticated": True, "wallet_address": "0xab", "role": "ops"})
        me = await backend.fetch_me("tok-1")

    assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-1"
    assert me.authenticated and me.role == "ops"


@pytest.mark.asyncio
async def test_orchestration_body_shape() -> None:
    backend = HttpDeskBackend(base_url=BASE)
    with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = _response(200, {"accepted": True, "workflow_run_id": "run-1", "reason": "ok"})
        result = await backend.start_orchestration("tok", _dealer("A", "US"), _dealer("B"))

    assert mock_post.call_args.args[0] == f"{BASE}/v1/orchestrations/otc"
    body = mock_post.call_args.kwargs["json"]
    assert body["proof_type"] == "settlement"
    assert [i["nonce"] for i in body["intents"]] == ["nonce-A", "nonce-B"]
    assert set(body["intents"][0]) == {"encrypted_payload", "signature", "signer_public_key", "nonce", "timestamp"}
    assert body["subjects"][0] == {"counterparty": {"counterparty_id": "A", "country": "US", "wallet_address": None}}
    assert body["subjects"][1]["counterparty"]["country"] is None
    assert result.workflow_run_id == "run-1"
    assert result.proof_job is None


@pytest.mark.asyncio
async def test_structured_error_preferred_over_status() -> None:
    backend = HttpDeskBackend(base_url=BASE)
    with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = _response(409, {"error_code": "REPLAY_NONCE", "reason": "nonce already used"})
        with pytest.raises(DomainRejection) as exc_info:
            await backend.start_orchestration("tok", _dealer("A"), _dealer("B"))

    assert exc_info.value.error_code == "REPLAY_NONCE"
    assert exc_info.value.status_code == 409
    assert str(exc_info.value) == "[REPLAY_NONCE] nonce already used"


@pytest.mark.asyncio
async def test_unparseable_error_body_is_transport_error() -> None:
    backend = HttpDeskBackend(base_url=BASE)
    with patch.object(httpx.AsyncClient, "get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(502, None, text="<html>bad gateway</html>")
        with pytest.raises(TransportError, match=r"proof-jobs fetch failed \(502\): <html>bad gateway</html>") as exc_info:
            await backend.fetch_proof_jobs("run-1")

    assert exc_info.value.status_code == 502
    assert "Authorization" not in mock_get.call_args.kwargs["headers"]


@pytest.mark.asyncio
async def test_non_json_success_is_transport_error() -> None:
    backend = HttpDeskBackend(base_url=BASE)
    with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = _response(200, None, text="ok")
        with pytest.raises(TransportError, match="orchestration returned non-JSON response"):
            await backend.start_orchestration("tok", _dealer("A"), _dealer("B"))


@pytest.mark.asyncio
async def test_malformed_proof_jobs_body_is_transport_error() -> None:
    backend = HttpDeskBackend(base_url=BASE)
    with patch.object(httpx.AsyncClient, "get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(200, {"found": True, "workflow_run_id": "run-1", "jobs": [None]})
        with pytest.raises(TransportError, match="proof-jobs fetch returned malformed response"):
            await backend.fetch_proof_jobs("run-1")


@pytest.mark.asyncio
async def test_network_failure_is_transport_error() -> None:
    backend = HttpDeskBackend(base_url=BASE)
    with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
        mock_post.side_effect = httpx.ConnectError("connection refused")
        with pytest.raises(TransportError, match="wallet verify failed"):
            await backend.verify_signature("0xab", "0xsig")


@pytest.mark.asyncio
async def test_proof_jobs_parse_with_token() -> None:
    backend = HttpDeskBackend(base_url=BASE)
    job = {"job_id": "job-1", "workflow_run_id": "run-1", "status": "proving", "transitions": []}
    with patch.object(httpx.AsyncClient, "get", new_callable=AsyncMock) as mock_get:
        mock_get.return_value = _response(200, {"found": True, "workflow_run_id": "run-1", "jobs": [job]})
        runs = await backend.fetch_proof_jobs("run-1", access_token="tok")

    assert mock_get.call_args.args[0] == f"{BASE}/v1/proof-jobs/run/run-1"
    assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"
    assert runs.jobs[0].status == "PROVING"
    assert runs.jobs[0].queue_latency_ms is None


@pytest.mark.integration
def test_http_backend_init_does_not_connect() -> None:
    backend = HttpDeskBackend(base_url="http://invalid.local")
    assert backend.base_url == "http://invalid.local"
