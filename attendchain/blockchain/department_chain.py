"""
Department chain (root of the hierarchy).

A single chain holds the add/update/delete history of every department.
It has no parent, so its genesis block links to GENESIS_PREV_HASH.
"""

from typing import Any, Dict, List, Optional

from ..config import DEFAULT_DIFFICULTY
from .base_chain import EntityChain
from .clock import Clock
from .ledger import Block, Blockchain
from .records import (
    ACTION_ADD, ACTION_DELETE, ACTION_UPDATE,
    DEPARTMENT_SCHEMA, STATUS_ACTIVE, STATUS_DELETED, is_active,
)


DEPARTMENT_CHAIN_TYPE = 'department'


class DepartmentChain(EntityChain):
    """Append-only department ledger."""

    def __init__(
        self,
        difficulty: int = DEFAULT_DIFFICULTY,
        clock: Optional[Clock] = None,
        chain: Optional[Blockchain] = None
    ):
        """
        Args:
            difficulty: PoW difficulty for new chains
            clock: Time source
            chain: Existing engine to wrap (snapshot restore); when omitted a
                new chain is created and its genesis block mined
        """
        if chain is None:
            chain = Blockchain(DEPARTMENT_CHAIN_TYPE, None, difficulty, clock)
            chain.initialize(chain.genesis_payload())
        super().__init__(chain)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], clock: Optional[Clock] = None) -> 'DepartmentChain':
        return cls(chain=Blockchain.from_dict(data, clock))

    # ========================================================================
    # Writes
    # ========================================================================

    def add_department(self, department: Dict[str, Any]) -> Block:
        """
        Append an add block.

        Args:
            department: Mapping with id, name and head
        """
        return self._append({
            'action': ACTION_ADD,
            'type': DEPARTMENT_SCHEMA.entity_type,
            'departmentId': department['id'],
            'name': department.get('name'),
            'head': department.get('head'),
            'status': STATUS_ACTIVE,
            'timestamp': self._timestamp(),
        })

    def update_department(self, department_id: str, updates: Dict[str, Any]) -> Block:
        return self._append({
            'action': ACTION_UPDATE,
            'type': DEPARTMENT_SCHEMA.entity_type,
            'departmentId': department_id,
            'updates': dict(updates),
            'status': STATUS_ACTIVE,
            'timestamp': self._timestamp(),
        })

    def delete_department(self, department_id: str) -> Block:
        """Append a tombstone; history is kept."""
        return self._append({
            'action': ACTION_DELETE,
            'type': DEPARTMENT_SCHEMA.entity_type,
            'departmentId': department_id,
            'status': STATUS_DELETED,
            'timestamp': self._timestamp(),
        })

    # ========================================================================
    # Reads
    # ========================================================================

    def get_department(self, department_id: str) -> Optional[Dict[str, Any]]:
        """Current state of a department, or None if it was never added."""
        return DEPARTMENT_SCHEMA.fold(self.payloads(), department_id)

    def get_all_departments(self) -> List[Dict[str, Any]]:
        """Active departments, most recently touched first."""
        return DEPARTMENT_SCHEMA.active_records(self.payloads())

    def department_exists(self, department_id: str) -> bool:
        return is_active(self.get_department(department_id))
