"""
Deterministic canonical encoding primitives.

These helpers back record keys, escrow names and signing payloads, so the
same logical input must always produce the same bytes.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


CANONICAL_ENCODING_VERSION = 1


def _reject_surrogates(s: str) -> None:
    # Surrogate code points are not valid Unicode scalar values and encode
    # differently across JSON/UTF-8 encoders.
    for ch in s:
        o = ord(ch)
        if 0xD800 <= o <= 0xDFFF:
            raise TypeError("surrogate code points are not allowed in canonical encoding")


def _reject_floats(value: Any) -> None:
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, str):
        _reject_surrogates(value)
    if isinstance(value, dict):
        for k in value.keys():
            if not isinstance(k, str):
                raise TypeError("dict keys must be str for canonical encoding")
        for k, v in value.items():
            _reject_surrogates(k)
            _reject_floats(v)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _reject_floats(item)
        return


def canonical_json_bytes(value: Any) -> bytes:
    """
    Canonical JSON encoding for hashing/signing.

    Rules:
    - UTF-8
    - sort_keys=True
    - separators=(',', ':') (no whitespace)
    - allow_nan=False
    - floats rejected (to avoid representation ambiguity)
    """
    _reject_floats(value)
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """
    Create a domain separation prefix.

    The output is ASCII-only and NUL-terminated to make concatenation unambiguous.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label:
        raise ValueError("label must not contain NUL")
    try:
        label_bytes = label.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError("label must be ASCII") from exc
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return b"nftamm:" + label_bytes + b":v" + str(version).encode("ascii") + b"\x00"


def derive_address(label: str, *parts: str) -> str:
    """
    Deterministic 32-byte address for a record or vault.

    H(domain_sep(label) || canonical_json([parts...]))
    """
    for p in parts:
        if not isinstance(p, str):
            raise TypeError("address parts must be str")
    return sha256_hex(domain_sep_bytes(label) + canonical_json_bytes(list(parts)))
