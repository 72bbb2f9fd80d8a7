"""
Validators — Solana address and transaction signature checks.
"""
import re

from solders.pubkey import Pubkey

# Base58 alphabet (no 0, O, I, l). A 64-byte signature encodes to 86-88 chars.
_SIGNATURE_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{64,90}$")


def validate_wallet_address(address: str | None) -> bool:
    """Return True if address decodes to a 32-byte Solana public key."""
    if not address or not address.strip():
        return False
    try:
        Pubkey.from_string(address.strip())
    except (ValueError, TypeError):
        return False
    return True


def validate_signature(signature: str | None) -> bool:
    """Cheap shape check for a base58 transaction signature."""
    if not signature:
        return False
    return bool(_SIGNATURE_RE.match(signature.strip()))


def slugify(name: str) -> str:
    """Lowercase, hyphen-separated id for category names."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower())
    return slug.strip("-")
