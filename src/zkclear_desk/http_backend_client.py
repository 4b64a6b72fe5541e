from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from .backend_client import PROOF_TYPE, DeskBackend, parse_response
from .domain_types import (
    DealerIntent,
    NonceChallenge,
    OrchestrationResult,
    ProofJobsByRun,
    VerifiedToken,
    WalletIdentity,
)
from .errors import DomainRejection, TransportError

logger = logging.getLogger(__name__)


def _parse_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _decode(resp: httpx.Response, operation: str) -> Mapping[str, Any]:
    """
    Turn a response into a JSON object or a typed error.

    Structured ``error_code``/``reason`` fields win over the HTTP status; a
    body that is not JSON becomes a TransportError.
    """
    status = resp.status_code
    payload = _parse_body(resp)
    ok = 200 <= status < 300

    if not ok:
        if isinstance(payload, Mapping):
            reason = payload.get("reason") or f"{operation} failed ({status})"
            raise DomainRejection(payload.get("error_code") or None, str(reason), status)
        raw = resp.text or "empty response"
        raise TransportError(f"{operation} failed ({status}): {raw}", status)

    if not isinstance(payload, Mapping):
        raise TransportError(f"{operation} returned non-JSON response", status)
    return payload


class HttpDeskBackend(DeskBackend):
    def __init__(
        self,
        base_url: str,
        timeout_secs: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_secs
        self.headers = {"Content-Type": "application/json"}

    def _auth_headers(self, access_token: Optional[str]) -> dict[str, str]:
        headers = dict(self.headers)
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        json: Mapping[str, Any] | None = None,
        access_token: Optional[str] = None,
    ) -> Mapping[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                if method == "GET":
                    resp = await client.get(url, headers=self._auth_headers(access_token))
                else:
                    resp = await client.post(url, json=json, headers=self._auth_headers(access_token))
        except httpx.HTTPError as exc:
            raise TransportError(f"{operation} failed: {exc}") from exc
        return _decode(resp, operation)

    async def request_nonce(self, wallet_address: str) -> NonceChallenge:
        data = await self._request(
            "POST", "/v1/auth/wallet/nonce", "wallet nonce", json={"wallet_address": wallet_address}
        )
        return parse_response(NonceChallenge.from_payload, data, "wallet nonce")

    async def verify_signature(self, wallet_address: str, signature: str) -> VerifiedToken:
        data = await self._request(
            "POST",
            "/v1/auth/wallet/verify",
            "wallet verify",
            json={"wallet_address": wallet_address, "signature": signature},
        )
        return parse_response(VerifiedToken.from_payload, data, "wallet verify")

    async def fetch_me(self, access_token: str) -> WalletIdentity:
        data = await self._request("GET", "/v1/auth/wallet/me", "wallet me", access_token=access_token)
        return parse_response(WalletIdentity.from_payload, data, "wallet me")

    async def start_orchestration(
        self,
        access_token: str,
        left: DealerIntent,
        right: DealerIntent,
        proof_type: str = PROOF_TYPE,
    ) -> OrchestrationResult:
        body: dict[str, Any] = {
            "intents": [left.built.to_wire(), right.built.to_wire()],
            "subjects": [left.subject(), right.subject()],
            "proof_type": proof_type,
        }
        data = await self._request(
            "POST", "/v1/orchestrations/otc", "orchestration", json=body, access_token=access_token
        )
        return parse_response(OrchestrationResult.from_payload, data, "orchestration")

    async def fetch_proof_jobs(self, workflow_run_id: str, access_token: str | None = None) -> ProofJobsByRun:
        data = await self._request(
            "GET", f"/v1/proof-jobs/run/{workflow_run_id}", "proof-jobs fetch", access_token=access_token
        )
        return parse_response(ProofJobsByRun.from_payload, data, "proof-jobs fetch")
