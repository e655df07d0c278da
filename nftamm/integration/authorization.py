"""
Operation authorization.

The core assumes every operation it receives is authorized. The shell asks
an `Authorizer` first, passing the address that must have approved the
operation (the pool owner for pool management, the seller for fulfill_buy,
the buyer for fulfill_sell).

`BlsAuthorizer` verifies BLS12-381 signatures (py_ecc G2Basic) over a
domain-separated hash of the operation's canonical JSON. Host-filled
fields are excluded from the signed payload since the signer never sees them.
"""

from __future__ import annotations

import hashlib
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol

from ..core.errors import ErrorCode, MarketError
from ..core.types import CreatePoolArgs, FulfillBuyArgs, FulfillSellArgs, OperationArgs
from ..state.balances import Address
from ..state.canonical import canonical_json_bytes, domain_sep_bytes
from ..state.pools import MarketState

try:
    from py_ecc.bls import G2Basic

    _BLS_AVAILABLE = True
except Exception:  # pragma: no cover - optional dependency
    G2Basic = None  # type: ignore[assignment]
    _BLS_AVAILABLE = False


HOST_FILLED_FIELDS = frozenset({"metadata", "creator_accounts", "payer_balance"})


class AuthorizationError(Exception):
    """The operation was not approved by its required signer."""


class Authorizer(Protocol):
    def authorize(self, signer: Address, args: OperationArgs, proof: Optional[str]) -> None: ...


def signer_for(state: MarketState, args: OperationArgs) -> Address:
    """Address whose approval `args` needs."""
    if isinstance(args, CreatePoolArgs):
        return args.owner
    if isinstance(args, FulfillBuyArgs):
        return args.seller
    if isinstance(args, FulfillSellArgs):
        return args.buyer
    pool = state.get_pool(args.pool_key)
    if pool is None:
        raise MarketError(ErrorCode.UNKNOWN_POOL, f"pool {args.pool_key}")
    return pool.owner


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, bytes):
        return "0x" + value.hex()
    return value


def signing_payload(args: OperationArgs) -> Dict[str, Any]:
    """Canonical dict of the caller-supplied fields of `args`."""
    body = {
        f.name: _plain(getattr(args, f.name))
        for f in fields(args)
        if f.name not in HOST_FILLED_FIELDS
    }
    return {"op": type(args).__name__, "args": body}


def signing_message_hash(args: OperationArgs, *, chain_id: str) -> bytes:
    msg = domain_sep_bytes(f"op_sig:{chain_id}", version=1) + canonical_json_bytes(signing_payload(args))
    return hashlib.sha256(msg).digest()


def _require_bls() -> None:
    if not _BLS_AVAILABLE:
        raise AuthorizationError("py_ecc (BLS) not available")


def _hex_bytes(value: str, *, name: str, nbytes: int) -> bytes:
    if not isinstance(value, str):
        raise AuthorizationError(f"{name} must be a hex string")
    s = value[2:] if value.startswith("0x") else value
    try:
        out = bytes.fromhex(s)
    except ValueError as exc:
        raise AuthorizationError(f"{name} must be valid hex") from exc
    if len(out) != nbytes:
        raise AuthorizationError(f"{name} must be {nbytes} bytes")
    return out


def bls_pubkey_hex(privkey: int) -> str:
    _require_bls()
    if not isinstance(privkey, int) or isinstance(privkey, bool) or privkey <= 0:
        raise ValueError("privkey must be a positive int")
    return G2Basic.SkToPk(privkey).hex()  # type: ignore[union-attr]


def sign_operation(args: OperationArgs, *, privkey: int, chain_id: str) -> str:
    """Client-side helper: BLS signature (hex) authorizing `args`."""
    _require_bls()
    if not isinstance(privkey, int) or isinstance(privkey, bool) or privkey <= 0:
        raise ValueError("privkey must be a positive int")
    sig = G2Basic.Sign(privkey, signing_message_hash(args, chain_id=chain_id))  # type: ignore[union-attr]
    return sig.hex()


class AllowAllAuthorizer:
    """Approves everything. For tests and trusted single-user simulation."""

    def authorize(self, signer: Address, args: OperationArgs, proof: Optional[str]) -> None:
        return None


class BlsAuthorizer:
    """
    Verifies that `proof` is a BLS signature by the key registered for `signer`.

    Args:
        pubkeys: Address -> 48-byte BLS public key (hex)
        chain_id: Binds signatures to one deployment (replay protection)
    """

    def __init__(self, pubkeys: Mapping[Address, str], *, chain_id: str) -> None:
        if not isinstance(chain_id, str) or not chain_id:
            raise ValueError("chain_id must be a non-empty str")
        self._pubkeys = dict(pubkeys)
        self.chain_id = chain_id

    def register(self, address: Address, pubkey_hex: str) -> None:
        self._pubkeys[address] = pubkey_hex

    def authorize(self, signer: Address, args: OperationArgs, proof: Optional[str]) -> None:
        _require_bls()
        pubkey_hex = self._pubkeys.get(signer)
        if pubkey_hex is None:
            raise AuthorizationError(f"no public key registered for {signer}")
        if proof is None:
            raise AuthorizationError("missing signature")
        pubkey = _hex_bytes(pubkey_hex, name="pubkey", nbytes=48)
        sig = _hex_bytes(proof, name="signature", nbytes=96)
        msg_hash = signing_message_hash(args, chain_id=self.chain_id)
        try:
            ok = bool(G2Basic.Verify(pubkey, msg_hash, sig))  # type: ignore[union-attr]
        except Exception as exc:
            raise AuthorizationError(f"signature verification error: {exc}") from exc
        if not ok:
            raise AuthorizationError("invalid signature")
