# src/packstate/crypto/sig.py
from __future__ import annotations

import base64
import hashlib
from typing import Mapping, Optional, Sequence, Set

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from packstate.codec.pubkey import Pubkey
from packstate.runtime.accounts import AccountMeta

_DOMAIN = b"packstate-ix-v1"


def _decode_bytes(s: str) -> bytes:
    s = s.strip()
    if not s:
        raise ValueError("empty string")
    # hex
    try:
        return bytes.fromhex(s)
    except ValueError:
        pass
    # base64 / base64url
    try:
        padding = "=" * (-len(s) % 4)
        s2 = (s + padding).replace("-", "+").replace("_", "/")
        return base64.b64decode(s2, validate=True)
    except (ValueError, TypeError) as e:
        raise ValueError("not hex or base64") from e


def instruction_message(program_id: Pubkey, metas: Sequence[AccountMeta], data: bytes) -> bytes:
    """Canonical bytes a signer commits to.

    domain || program_id || u8 account count || (key, flags)* || sha256(data)
    """
    if len(metas) > 0xFF:
        raise ValueError("too many accounts for one instruction")
    out = bytearray(_DOMAIN)
    out += program_id.raw
    out.append(len(metas))
    for m in metas:
        out += m.key.raw
        out.append((1 if m.is_signer else 0) | (2 if m.is_writable else 0))
    out += hashlib.sha256(bytes(data)).digest()
    return bytes(out)


def pubkey_of(sk: Ed25519PrivateKey) -> Pubkey:
    return Pubkey(sk.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw))


def sign_ed25519(*, message: bytes, privkey: Ed25519PrivateKey, encoding: str = "hex") -> str:
    sig_b = privkey.sign(message)
    if encoding == "hex":
        return sig_b.hex()
    if encoding in {"b64", "base64"}:
        return base64.b64encode(sig_b).decode("ascii")
    raise ValueError("unsupported encoding")


def verify_ed25519_signature(*, message: bytes, sig: str, pubkey: Pubkey) -> bool:
    try:
        sig_b = _decode_bytes(sig)
        key = Ed25519PublicKey.from_public_bytes(pubkey.raw)
        key.verify(sig_b, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def verified_signers(
    *,
    program_id: Pubkey,
    metas: Sequence[AccountMeta],
    data: bytes,
    signatures: Mapping[str, str],
) -> Set[Pubkey]:
    """Keys flagged as signers in ``metas`` whose signature over the instruction verifies.

    ``signatures`` maps pubkey hex to signature (hex or base64). Unknown or
    invalid entries are ignored; the processor reports the missing signature.
    """
    msg = instruction_message(program_id, metas, data)
    out: Set[Pubkey] = set()
    for m in metas:
        if not m.is_signer:
            continue
        sig: Optional[str] = signatures.get(m.key.hex())
        if sig and verify_ed25519_signature(message=msg, sig=sig, pubkey=m.key):
            out.add(m.key)
    return out
