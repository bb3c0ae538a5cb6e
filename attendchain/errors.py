"""
Ledger error taxonomy.

Integrity problems (tampered hashes, broken links) are never raised; they are
reported as data by Blockchain.is_valid() and LedgerManager.validate_all_chains().
"""


class LedgerError(Exception):
    """Base class for ledger failures."""
    pass


class NotFoundError(LedgerError):
    """A referenced department, class, or student does not resolve to an active record."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} '{entity_id}' does not exist")


class InvalidArgumentError(LedgerError, ValueError):
    """Caller-supplied value rejected before any block is appended."""
    pass


class EmptyChainError(LedgerError):
    """Raised when the tip of a chain with zero blocks is requested."""
    pass
