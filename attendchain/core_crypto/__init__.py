# Core Cryptography Module
"""
Core cryptographic helpers including:
- SHA-256 hashing (cryptography library)
- Canonical JSON serialisation of block payloads
- Block header hashing
"""

from .digest import (
    sha256,
    sha256_hex,
    canonical_json,
    compute_block_hash,
)

__all__ = [
    'sha256',
    'sha256_hex',
    'canonical_json',
    'compute_block_hash',
]
