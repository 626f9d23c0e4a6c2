"""
JWT bearer authentication for authenticated JSON-RPC endpoints.

Nodes started with a JWT secret (e.g. geth --authrpc.jwtsecret) expect every
request to carry a fresh HS256 token whose only claim is "iat" (issued-at,
seconds). Tokens older than ~60s are rejected, so one is minted per request.

The secret file holds 32 bytes hex-encoded, optionally 0x-prefixed.
"""

from __future__ import annotations
import base64
import json
import logging
import time
from pathlib import Path

from cryptography.hazmat.primitives import hashes, hmac

log = logging.getLogger(__name__)

_JWT_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


class RpcAuth:
    """
    Generates signed request headers for an authenticated RPC endpoint.
    Loaded once at startup; signing is a single HMAC (~µs).
    """

    __slots__ = ("_secret",)

    def __init__(self, secret: bytes) -> None:
        if len(secret) != 32:
            raise ValueError(f"JWT secret must be 32 bytes, got {len(secret)}")
        self._secret = secret

    @classmethod
    def from_file(cls, secret_path: str) -> "RpcAuth":
        text = Path(secret_path).read_text().strip()
        if text.startswith(("0x", "0X")):
            text = text[2:]
        auth = cls(bytes.fromhex(text))
        log.info("RpcAuth initialized from %s", secret_path)
        return auth

    def token(self, issued_at: int | None = None) -> str:
        claims = {"iat": int(time.time()) if issued_at is None else issued_at}
        signing_input = ".".join(
            _b64url(json.dumps(part, separators=(",", ":")).encode())
            for part in (_JWT_HEADER, claims)
        )
        return signing_input + "." + _b64url(self._sign(signing_input.encode()))

    def get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token()}"}

    def _sign(self, message: bytes) -> bytes:
        mac = hmac.HMAC(self._secret, hashes.SHA256())
        mac.update(message)
        return mac.finalize()
