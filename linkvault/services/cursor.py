"""Opaque list cursors.

A cursor is a snapshot position, not an offset: it records the last sort
key a caller has seen, the caller it was issued to and the repository
generation at the time. Token format:

    base64url(json(payload)) + "." + hex(HMAC-SHA256(secret, body))

Clients must treat the string as opaque.
"""

import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass

from linkvault.config import settings

CURSOR_VERSION = 1


class CursorError(ValueError):
    """Raised when a cursor cannot be decoded or fails verification."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid cursor: {reason}")


@dataclass(frozen=True)
class ListCursor:
    owner_id: str
    generation: int
    created_at: str
    link_id: str

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.created_at, self.link_id)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(s: str) -> bytes:
    padding = 4 - len(s) % 4
    if padding != 4:
        s += "=" * padding
    return base64.urlsafe_b64decode(s)


def _sign(body: str) -> str:
    return hmac.new(
        settings.secret_key.encode("utf-8"),
        body.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def encode_cursor(cursor: ListCursor) -> str:
    payload = {
        "v": CURSOR_VERSION,
        "o": cursor.owner_id,
        "g": cursor.generation,
        "k": [cursor.created_at, cursor.link_id],
    }
    body = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{body}.{_sign(body)}"


def decode_cursor(token: str) -> ListCursor:
    """Decode and verify a cursor. Raises CursorError on any defect."""
    if not token or token.count(".") != 1:
        raise CursorError("malformed")

    body, signature = token.split(".")
    if not hmac.compare_digest(_sign(body), signature):
        raise CursorError("bad_signature")

    try:
        payload = json.loads(_b64url_decode(body))
        version = payload["v"]
        created_at, link_id = payload["k"]
        cursor = ListCursor(
            owner_id=str(payload["o"]),
            generation=int(payload["g"]),
            created_at=str(created_at),
            link_id=str(link_id),
        )
    except (binascii.Error, UnicodeDecodeError, KeyError, TypeError, ValueError) as e:
        raise CursorError("malformed") from e

    if version != CURSOR_VERSION:
        raise CursorError("version")
    return cursor
