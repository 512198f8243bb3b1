"""`.prb` bundle codec: whole-workspace export / import.

Encode:  JSON → zlib deflate (optional) → AES-256-GCM (optional) → base64 → envelope JSON
Decode:  envelope JSON → base64 → decrypt (if encrypted) → inflate (if compressed) → JSON

Key derivation is PBKDF2-HMAC-SHA256 (100 000 iterations, 16-byte salt) and
the GCM tag is appended to the ciphertext, the same layout WebCrypto uses,
so bundles move freely between this package and the browser app.

Every decode stage fails with its own exception type; nothing is recovered
silently and no partial result is returned.
"""

from __future__ import annotations

import base64
import binascii
import json
import os
import warnings
import zlib
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from promptchronicle.db.models import BundlePayload, InvalidRecordError, LibraryItem
from promptchronicle.library.hashing import canonical_json
from promptchronicle.library.versions import iso_timestamp

BUNDLE_FORMAT_VERSION = "1.0"
BUNDLE_SUFFIX = ".prb"

KDF_ITERATIONS = 100_000
KEY_BYTES = 32
SALT_BYTES = 16
IV_BYTES = 12


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BundleError(ValueError):
    """Base class for every bundle decode / encode failure."""


class BundleFormatError(BundleError):
    """Envelope is not valid JSON, lacks required fields, or has corrupt base64."""


class PasswordRequiredError(BundleError):
    """The bundle is encrypted and no password was supplied."""


class DecryptionError(BundleError):
    """Wrong password or tampered ciphertext (indistinguishable under GCM)."""


class CorruptBundleError(BundleError):
    """The compressed payload could not be inflated."""


class PayloadParseError(BundleError):
    """The decoded payload is not a recognisable workspace."""


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


@dataclass
class BundleEnvelope:
    """Outer JSON object of a .prb file."""

    version: str
    created: str
    item_count: int
    encrypted: bool
    compressed: bool
    payload: str
    salt: str | None = None
    iv: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "version": self.version,
            "created": self.created,
            "itemCount": self.item_count,
            "encrypted": self.encrypted,
            "compressed": self.compressed,
        }
        if self.salt is not None:
            out["salt"] = self.salt
        if self.iv is not None:
            out["iv"] = self.iv
        out["payload"] = self.payload
        return out

    @classmethod
    def from_dict(cls, data: Any) -> BundleEnvelope:
        if not isinstance(data, dict):
            raise BundleFormatError("Invalid bundle file: expected a JSON object")
        version = data.get("version")
        payload = data.get("payload")
        if not version or not payload:
            raise BundleFormatError("Invalid bundle file: missing required fields")
        if not isinstance(payload, str):
            raise BundleFormatError("Invalid bundle file: payload must be a string")
        item_count = data.get("itemCount", 0)
        return cls(
            version=str(version),
            created=str(data.get("created") or ""),
            item_count=item_count if isinstance(item_count, int) else 0,
            encrypted=bool(data.get("encrypted", False)),
            compressed=bool(data.get("compressed", False)),
            payload=payload,
            salt=data.get("salt") or None,
            iv=data.get("iv") or None,
        )


@dataclass
class ImportResult:
    payload: BundlePayload
    envelope: BundleEnvelope


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(text: Any) -> bytes:
    if not isinstance(text, str):
        raise ValueError("base64 field must be a string")
    return base64.b64decode(text, validate=True)


def derive_key(password: str, salt: bytes) -> bytes:
    """PBKDF2-HMAC-SHA256 → 256-bit AES key."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def _encrypt(data: bytes, password: str) -> tuple[bytes, bytes, bytes]:
    salt = os.urandom(SALT_BYTES)
    iv = os.urandom(IV_BYTES)
    ciphertext = AESGCM(derive_key(password, salt)).encrypt(iv, data, None)
    return ciphertext, salt, iv


def _decrypt(data: bytes, password: str, salt: bytes, iv: bytes) -> bytes:
    return AESGCM(derive_key(password, salt)).decrypt(iv, data, None)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def create_bundle(
    payload: BundlePayload,
    *,
    compress: bool = True,
    encrypt: bool = False,
    password: str | None = None,
    now: float | None = None,
) -> str:
    """Serialize *payload* into .prb text.

    ``compressed`` in the envelope always reflects what was done to the bytes.
    Asking for encryption without a password yields a plain bundle and a
    UserWarning; ``encrypted`` stays false.

    Args:
        payload: Items, collections and tags to export.
        compress: Deflate the JSON before encoding.
        encrypt: Encrypt with a key derived from *password*.
        password: Bundle password (required for encryption to happen).
        now: Override the creation timestamp (epoch seconds).

    Returns:
        The envelope as indented JSON.
    """
    data = canonical_json(payload.to_dict()).encode("utf-8")
    if compress:
        data = zlib.compress(data)

    envelope = BundleEnvelope(
        version=BUNDLE_FORMAT_VERSION,
        created=iso_timestamp(now),
        item_count=len(payload.items),
        encrypted=False,
        compressed=compress,
        payload="",
    )

    if encrypt and password:
        ciphertext, salt, iv = _encrypt(data, password)
        envelope.encrypted = True
        envelope.salt = _b64encode(salt)
        envelope.iv = _b64encode(iv)
        envelope.payload = _b64encode(ciphertext)
    else:
        if encrypt:
            warnings.warn(
                "Encryption was requested without a password; the bundle is NOT encrypted.",
                UserWarning,
                stacklevel=2,
            )
        envelope.payload = _b64encode(data)

    return json.dumps(envelope.to_dict(), indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def parse_bundle(bundle_text: str, password: str | None = None) -> ImportResult:
    """Decode .prb text back into a workspace.

    Raises:
        BundleFormatError: Envelope invalid, payload not base64, or salt/IV missing.
        PasswordRequiredError: Encrypted bundle and no *password*.
        DecryptionError: Wrong password or tampered ciphertext.
        CorruptBundleError: Compressed payload does not inflate.
        PayloadParseError: Decoded payload is not a workspace.
    """
    try:
        raw = json.loads(bundle_text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise BundleFormatError("Invalid bundle file: not valid JSON") from exc

    envelope = BundleEnvelope.from_dict(raw)

    try:
        data = _b64decode(envelope.payload)
    except (binascii.Error, ValueError) as exc:
        raise BundleFormatError("Invalid bundle file: corrupt payload") from exc

    if envelope.encrypted:
        if not password:
            raise PasswordRequiredError("This bundle is encrypted. Please provide a password.")
        if not envelope.salt or not envelope.iv:
            raise BundleFormatError("Invalid encrypted bundle: missing salt or IV")
        try:
            salt = _b64decode(envelope.salt)
            iv = _b64decode(envelope.iv)
            data = _decrypt(data, password, salt, iv)
        except (InvalidTag, ValueError) as exc:
            raise DecryptionError("Decryption failed. Wrong password?") from exc

    if envelope.compressed:
        try:
            data = zlib.decompress(data)
        except zlib.error as exc:
            raise CorruptBundleError("Decompression failed. Bundle may be corrupt.") from exc

    return ImportResult(payload=_parse_payload(data), envelope=envelope)


def _parse_payload(data: bytes) -> BundlePayload:
    try:
        parsed = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PayloadParseError("Invalid bundle payload: not valid JSON") from exc

    try:
        # Oldest bundles carry a bare list of items.
        if isinstance(parsed, list):
            return BundlePayload(items=[LibraryItem.from_dict(i) for i in parsed])
        if isinstance(parsed, dict):
            return BundlePayload.from_dict(parsed)
    except InvalidRecordError as exc:
        raise PayloadParseError(f"Invalid bundle payload: {exc}") from exc

    raise PayloadParseError(
        "Invalid bundle payload: expected a list of items or an "
        "{items, collections, tags} object"
    )
