"""Keyed integrity digest over a city save.

Optional tamper evidence for clients that sign their saves: an HMAC-SHA256
over ``identity:cell,cell,...,:money``, base64 encoded.  The default
validation pipeline does not call it.
"""

from __future__ import annotations

import base64
import hashlib
import hmac

import numpy as np
from numpy.typing import ArrayLike


def _payload(identity: str, grid: ArrayLike, money: int) -> bytes:
    cells = "".join(f"{int(code)}," for code in np.asarray(grid).ravel())
    return f"{identity}:{cells}:{int(money)}".encode()


def generate_checksum(
    secret: str | bytes,
    identity: str,
    grid: ArrayLike,
    money: int,
) -> str:
    """Return the base64 HMAC-SHA256 digest of a save.

    Raises:
        ValueError: If ``secret`` is empty.
    """
    key = secret.encode() if isinstance(secret, str) else secret
    if not key:
        msg = "checksum secret is not configured"
        raise ValueError(msg)
    digest = hmac.new(key, _payload(identity, grid, money), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_checksum(
    secret: str | bytes,
    identity: str,
    grid: ArrayLike,
    money: int,
    provided: str | None,
) -> bool:
    """Constant-time comparison of ``provided`` against the expected digest."""
    if not provided:
        return False
    expected = generate_checksum(secret, identity, grid, money)
    return hmac.compare_digest(expected, provided)
