"""
Client-side sealing of trade intents.

Each intent is encrypted with AES-256-GCM under the pre-shared desk key and
signed with a fresh Ed25519 key pair. The signature covers
``"{encrypted_payload}:{nonce}:{timestamp}"`` so a ciphertext cannot be
replayed under a new timestamp. The private key is dropped as soon as the
signature exists.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import time
import uuid
from typing import Callable

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .config import DEMO_INTENT_KEY_HEX
from .domain_types import BuiltIntent, PlainIntent
from .errors import CryptoConfigError, DomainRejection

logger = logging.getLogger(__name__)

KEY_LEN = 32
AEAD_NONCE_LEN = 12
PUBLIC_KEY_LEN = 32
SIGNATURE_LEN = 64

_FIELD_ORDER = ("side", "asset_pair", "amount", "limit_price", "settlement_currency", "counterparty_id")


def canonicalize_intent(intent: PlainIntent) -> str:
    body = {name: getattr(intent, name) for name in _FIELD_ORDER}
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


def signing_message(encrypted_payload: str, nonce: str, timestamp: int) -> bytes:
    return f"{encrypted_payload}:{nonce}:{timestamp}".encode("utf-8")


def parse_key_hex(key_hex: str) -> bytes:
    clean = key_hex.strip()
    if clean.startswith(("0x", "0X")):
        clean = clean[2:]
    try:
        key = bytes.fromhex(clean)
    except ValueError as exc:
        raise CryptoConfigError(f"intent encryption key is not valid hex: {exc}") from exc
    if len(key) != KEY_LEN:
        raise CryptoConfigError(f"intent encryption key must be {KEY_LEN}-byte hex, got {len(key)} bytes")
    return key


def encrypt_payload(plaintext: str, key: bytes) -> str:
    nonce = os.urandom(AEAD_NONCE_LEN)
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


class IntentCrypto:
    def __init__(
        self,
        key_hex: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if key_hex is None:
            logger.warning("No intent encryption key configured; using the demo key")
            key_hex = DEMO_INTENT_KEY_HEX
        self._key_hex = key_hex
        self._clock = clock

    async def build(self, intent: PlainIntent) -> BuiltIntent:
        # Key is checked first so a bad configuration does no signing work.
        key = parse_key_hex(self._key_hex)
        plaintext = canonicalize_intent(intent)

        signer = SigningKey.generate()
        encrypted_payload = encrypt_payload(plaintext, key)
        nonce = str(uuid.uuid4())
        timestamp = int(self._clock())

        signed = signer.sign(signing_message(encrypted_payload, nonce, timestamp))
        public_key = signer.verify_key.encode(encoder=HexEncoder).decode("ascii")
        del signer

        return BuiltIntent(
            encrypted_payload=encrypted_payload,
            signature=signed.signature.hex(),
            signer_public_key=public_key,
            nonce=nonce,
            timestamp=timestamp,
        )


def verify_intent_signature(intent: BuiltIntent) -> None:
    """Apply the gateway's signature check to a built intent."""
    try:
        key_bytes = bytes.fromhex(intent.signer_public_key)
        sig_bytes = bytes.fromhex(intent.signature)
    except ValueError as exc:
        raise DomainRejection("INVALID_SIGNER", f"invalid hex: {exc}") from exc
    if len(key_bytes) != PUBLIC_KEY_LEN:
        raise DomainRejection("INVALID_SIGNER", f"signer_public_key must be {PUBLIC_KEY_LEN} bytes")
    if len(sig_bytes) != SIGNATURE_LEN:
        raise DomainRejection("INVALID_SIGNATURE", f"signature must be {SIGNATURE_LEN} bytes")

    message = signing_message(intent.encrypted_payload, intent.nonce, intent.timestamp)
    try:
        VerifyKey(key_bytes).verify(message, sig_bytes)
    except BadSignatureError as exc:
        raise DomainRejection("BAD_SIGNATURE", "signature verification failed") from exc


def decrypt_intent_payload(encrypted_payload: str, key_hex: str) -> str:
    """Split ``nonce || ciphertext`` and open it with the shared key."""
    key = parse_key_hex(key_hex)
    try:
        raw = base64.b64decode(encrypted_payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DomainRejection("INVALID_PAYLOAD", f"invalid encrypted_payload base64: {exc}") from exc
    if len(raw) <= AEAD_NONCE_LEN:
        raise DomainRejection("INVALID_PAYLOAD", "encrypted_payload is too short")

    nonce, sealed = raw[:AEAD_NONCE_LEN], raw[AEAD_NONCE_LEN:]
    try:
        plain = AESGCM(key).decrypt(nonce, sealed, None)
    except InvalidTag as exc:
        raise DomainRejection("DECRYPT_FAILED", "decrypt failed") from exc
    return plain.decode("utf-8")
