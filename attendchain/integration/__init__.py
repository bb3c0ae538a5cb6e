# Integration Module
"""
Orchestration across the department, class and student chains, plus the
snapshot persistence used at startup, on an interval, and at shutdown.
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import manager, storage
    for module in (manager, storage):
        if hasattr(module, name):
            return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    'LedgerManager',
    'SnapshotStore',
    'AutoSaver',
    'open_manager',
]
