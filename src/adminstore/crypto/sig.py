# src/adminstore/crypto/sig.py
from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

Json = Dict[str, Any]


def _decode_bytes(s: str) -> bytes:
    s = s.strip()
    if not s:
        raise ValueError("empty string")
    try:
        return bytes.fromhex(s)
    except ValueError:
        pass
    try:
        padding = "=" * (-len(s) % 4)
        s2 = (s + padding).replace("-", "+").replace("_", "/")
        return base64.b64decode(s2, validate=True)
    except Exception as e:
        raise ValueError("not hex or base64") from e


def body_sha256(body: bytes) -> str:
    return hashlib.sha256(body or b"").hexdigest()


def canonical_call_message(*, method: str, path: str, caller: str, nonce: int, body: bytes) -> bytes:
    """Bytes an API caller signs: method, path, identity, nonce and the body hash."""
    obj: Json = {
        "method": str(method).upper(),
        "path": str(path),
        "caller": str(caller),
        "nonce": int(nonce),
        "body_sha256": body_sha256(body),
    }
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def verify_ed25519_signature(*, message: bytes, sig: str, pubkey: str) -> bool:
    try:
        sig_b = _decode_bytes(sig)
        pk_b = _decode_bytes(pubkey)
        key = Ed25519PublicKey.from_public_bytes(pk_b)
        key.verify(sig_b, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def sign_ed25519(*, message: bytes, privkey: str, encoding: str = "hex") -> str:
    """Sign a message with a 32-byte Ed25519 seed (hex or base64)."""
    pk_b = _decode_bytes(privkey)
    if len(pk_b) == 64:
        pk_b = pk_b[:32]
    if len(pk_b) != 32:
        raise ValueError("ed25519 privkey must be 32-byte seed (or 64-byte expanded key)")

    sig_b = Ed25519PrivateKey.from_private_bytes(pk_b).sign(message)
    if encoding == "hex":
        return sig_b.hex()
    if encoding in {"b64", "base64"}:
        return base64.b64encode(sig_b).decode("ascii")
    raise ValueError("unsupported encoding")
