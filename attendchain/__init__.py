# AttendChain
"""
Academic records ledger built from hash-linked, proof-of-work chains.

Sub-packages:
- core_crypto  - SHA-256 digests and canonical payload serialisation
- blockchain   - Block, chain engine, department/class/student chains
- integration  - LedgerManager orchestration and snapshot persistence
"""

__version__ = "1.0.0"
