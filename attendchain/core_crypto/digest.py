"""
Digest Module

SHA-256 hashing for the ledger, backed by the `cryptography` library.

Components:
- sha256 / sha256_hex: raw and hex-encoded digests
- canonical_json: deterministic payload serialisation
- compute_block_hash: digest of a block header

The block header is the string concatenation
    index + timestamp + canonical_json(payload) + prev_hash + nonce
encoded as UTF-8. Changing any one of these fields changes the digest.
"""

import json
from typing import Any

from cryptography.hazmat.primitives import hashes


DIGEST_SIZE = 32  # bytes
HEX_DIGEST_LENGTH = DIGEST_SIZE * 2


def sha256(data: bytes) -> bytes:
    """
    Compute the SHA-256 digest of data.

    Args:
        data: Bytes to hash

    Returns:
        32-byte digest
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def sha256_hex(data: bytes) -> str:
    """Compute SHA-256 and return it as a 64-char lowercase hex string."""
    return sha256(data).hex()


def canonical_json(obj: Any) -> str:
    """
    Serialise a payload to compact JSON.

    Key order is the dict's insertion order, which json.loads preserves,
    so a payload read back from a snapshot serialises to the same text
    it was hashed with.

    Raises:
        ValueError: If the object cannot be represented as JSON
    """
    try:
        return json.dumps(obj, separators=(',', ':'), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValueError("Payload is not JSON-serializable") from e


def header_prefix(index: int, timestamp: int, payload: Any, prev_hash: str) -> str:
    """Everything in the block header except the nonce."""
    return f"{index}{timestamp}{canonical_json(payload)}{prev_hash}"


def compute_block_hash(
    index: int,
    timestamp: int,
    payload: Any,
    prev_hash: str,
    nonce: int
) -> str:
    """
    Compute the hex hash of a block header.

    Args:
        index: Block position in its chain
        timestamp: Block creation time (epoch milliseconds)
        payload: Block payload (JSON-serialisable)
        prev_hash: Hash of the preceding block (or parent reference for genesis)
        nonce: Proof-of-work counter

    Returns:
        64-char hex digest
    """
    header = header_prefix(index, timestamp, payload, prev_hash) + str(nonce)
    return sha256_hex(header.encode('utf-8'))
