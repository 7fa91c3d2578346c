"""Sealed webhook configuration.

A webhook URL carries its own routing configuration: the target URL and the
template are serialized, encrypted and authenticated with AES-256-GCM under a
key derived from the server secret, and packed into a single token::

    token = base64url(nonce || ciphertext || tag)

The nonce is drawn fresh for every seal, so the same configuration never
yields the same token twice and no nonce state has to be shared between
instances. Rotating the secret invalidates every token issued before.
"""
import os
import json
import base64
import binascii
import hashlib
from dataclasses import dataclass, asdict

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sealhook.errors import (
    SealError,
    TokenDecodeError,
    TokenTooShortError,
    TokenDecryptError,
    TokenPayloadError,
)

# AESGCM accepts a range of nonce lengths and exposes no size constant; 12 bytes is
# the GCM standard nonce.
AESGCM_NONCE_SIZE = 12
WEBHOOK_PATH = "/wh/"


@dataclass(frozen=True)
class SealedConfig:
    """Routing configuration carried inside a webhook token."""
    url: str
    tmpl: str


class Sealer:
    """Seals and unseals webhook configurations with AES-256-GCM.

    The 256-bit key is the SHA-256 digest of the secret, so operator secrets
    of any length can be used directly.
    """

    def __init__(self, secret: str):
        self._key = hashlib.sha256(secret.encode()).digest()
        self._aesgcm = AESGCM(self._key)

    @property
    def nonce_size(self) -> int:
        return AESGCM_NONCE_SIZE

    def seal(self, target_url: str, template: str) -> str:
        """Encrypt a configuration into a URL-safe token."""
        try:
            plaintext = json.dumps(
                asdict(SealedConfig(url=target_url, tmpl=template)),
                separators=(",", ":"),
            ).encode()
        except (TypeError, ValueError) as e:
            raise SealError(f"marshal config: {e}") from e

        try:
            nonce = os.urandom(self.nonce_size)
        except NotImplementedError as e:
            raise SealError(f"generate nonce: {e}") from e

        ct_and_tag = self._aesgcm.encrypt(nonce, plaintext, None)
        return base64.urlsafe_b64encode(nonce + ct_and_tag).decode("ascii")

    def unseal(self, token: str) -> SealedConfig:
        """Decrypt and verify a token.

        Raises a subclass of ``InvalidTokenError`` on any failure. Wrong key
        and tampering are indistinguishable.
        """
        # b64decode maps altchars but still lets the standard alphabet through
        if "+" in token or "/" in token:
            raise TokenDecodeError("decode token: malformed base64")
        try:
            data = base64.b64decode(token, altchars=b"-_", validate=True)
        except (binascii.Error, ValueError) as e:
            raise TokenDecodeError("decode token: malformed base64") from e

        if len(data) < self.nonce_size:
            raise TokenTooShortError("token too short")
        nonce, ct_and_tag = data[:self.nonce_size], data[self.nonce_size:]

        try:
            plaintext = self._aesgcm.decrypt(nonce, ct_and_tag, None)
        except (InvalidTag, ValueError):
            raise TokenDecryptError("decryption failed") from None

        try:
            raw = json.loads(plaintext)
            return SealedConfig(url=raw["url"], tmpl=raw["tmpl"])
        except (ValueError, TypeError, KeyError) as e:
            raise TokenPayloadError(f"unmarshal config: {e}") from e


def extract_token(raw: str) -> str:
    """Accept a bare token or a full webhook URL (token after the last ``/wh/``)."""
    idx = raw.rfind(WEBHOOK_PATH)
    if idx == -1:
        return raw
    return raw[idx + len(WEBHOOK_PATH):]
