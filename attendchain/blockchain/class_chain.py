"""
Class chain (child of the department chain).

One chain per department holds the history of all of that department's
classes. Its genesis prev_hash is the department chain's tip hash at the
moment the class chain was created.
"""

from typing import Any, Dict, List, Optional

from ..config import DEFAULT_DIFFICULTY
from .base_chain import EntityChain
from .clock import Clock
from .ledger import Block, Blockchain
from .records import (
    ACTION_ADD, ACTION_DELETE, ACTION_UPDATE,
    CLASS_SCHEMA, STATUS_ACTIVE, STATUS_DELETED, is_active,
)


CLASS_CHAIN_PREFIX = 'class-'


class ClassChain(EntityChain):
    """Append-only ledger of the classes in one department."""

    def __init__(
        self,
        department_id: str,
        parent_department_hash: Optional[str] = None,
        difficulty: int = DEFAULT_DIFFICULTY,
        clock: Optional[Clock] = None,
        chain: Optional[Blockchain] = None
    ):
        self.department_id = department_id
        if chain is None:
            chain = Blockchain(
                f"{CLASS_CHAIN_PREFIX}{department_id}", parent_department_hash, difficulty, clock
            )
            chain.initialize(chain.genesis_payload(
                message=f"Genesis block for class chain under department {department_id}",
                departmentId=department_id,
                parentDepartmentHash=parent_department_hash,
            ))
        super().__init__(chain)

    @classmethod
    def from_dict(
        cls,
        department_id: str,
        data: Dict[str, Any],
        clock: Optional[Clock] = None
    ) -> 'ClassChain':
        return cls(department_id, chain=Blockchain.from_dict(data, clock))

    # ========================================================================
    # Writes
    # ========================================================================

    def add_class(self, class_data: Dict[str, Any]) -> Block:
        """
        Append an add block.

        Args:
            class_data: Mapping with id, name, teacher and capacity
        """
        return self._append({
            'action': ACTION_ADD,
            'type': CLASS_SCHEMA.entity_type,
            'classId': class_data['id'],
            'departmentId': self.department_id,
            'name': class_data.get('name'),
            'teacher': class_data.get('teacher'),
            'capacity': class_data.get('capacity'),
            'status': STATUS_ACTIVE,
            'timestamp': self._timestamp(),
        })

    def update_class(self, class_id: str, updates: Dict[str, Any]) -> Block:
        return self._append({
            'action': ACTION_UPDATE,
            'type': CLASS_SCHEMA.entity_type,
            'classId': class_id,
            'departmentId': self.department_id,
            'updates': dict(updates),
            'status': STATUS_ACTIVE,
            'timestamp': self._timestamp(),
        })

    def delete_class(self, class_id: str) -> Block:
        return self._append({
            'action': ACTION_DELETE,
            'type': CLASS_SCHEMA.entity_type,
            'classId': class_id,
            'departmentId': self.department_id,
            'status': STATUS_DELETED,
            'timestamp': self._timestamp(),
        })

    # ========================================================================
    # Reads
    # ========================================================================

    def get_class(self, class_id: str) -> Optional[Dict[str, Any]]:
        return CLASS_SCHEMA.fold(self.payloads(), class_id)

    def get_all_classes(self) -> List[Dict[str, Any]]:
        """Active classes of this department, most recently touched first."""
        return CLASS_SCHEMA.active_records(self.payloads())

    def class_exists(self, class_id: str) -> bool:
        return is_active(self.get_class(class_id))
