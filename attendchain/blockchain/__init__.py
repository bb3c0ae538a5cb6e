# Blockchain Module
"""
Blockchain ledger implementation including:
- Block structure with SHA-256 linking
- Proof of Work (leading zero hex characters)
- Generic chain engine with validation and snapshots
- Department, class and student chains with event-sourced reads
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import ledger, records, department_chain, class_chain, student_chain, clock
    for module in (ledger, department_chain, class_chain, student_chain, records, clock):
        if hasattr(module, name):
            return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    'Block',
    'Blockchain',
    'ProofOfWork',
    'create_blockchain',
    'verify_blocks',
    'GENESIS_PREV_HASH',
    'DepartmentChain',
    'ClassChain',
    'StudentChain',
    'RecordSchema',
    'DEPARTMENT_SCHEMA',
    'CLASS_SCHEMA',
    'STUDENT_SCHEMA',
    'Clock',
    'SystemClock',
    'FixedClock',
]
