"""
Student chain (child of a class chain).

Each student gets a chain of their own holding one profile lifecycle
(add/update/delete) plus one attendance block per mark. The genesis block
links to the owning class chain's tip hash at creation time and records
the student, class and department ids.

Attendance is never deduplicated: marking twice on one date leaves two
blocks, and date lookups return the later one.
"""

from typing import Any, Dict, List, Optional

from ..config import DEFAULT_DIFFICULTY
from .base_chain import EntityChain
from .clock import Clock, calendar_date
from .ledger import Block, Blockchain
from .records import (
    ACTION_ADD, ACTION_ATTENDANCE, ACTION_DELETE, ACTION_UPDATE,
    STATUS_ACTIVE, STATUS_DELETED, STUDENT_SCHEMA, is_active,
)


STUDENT_CHAIN_PREFIX = 'student-'
ATTENDANCE_TYPE = 'attendance'


class StudentChain(EntityChain):
    """Profile and attendance ledger for a single student."""

    def __init__(
        self,
        student_id: str,
        class_id: str,
        department_id: str,
        parent_class_hash: Optional[str] = None,
        difficulty: int = DEFAULT_DIFFICULTY,
        clock: Optional[Clock] = None,
        chain: Optional[Blockchain] = None
    ):
        self.student_id = student_id
        self.class_id = class_id
        self.department_id = department_id
        if chain is None:
            chain = Blockchain(
                f"{STUDENT_CHAIN_PREFIX}{student_id}", parent_class_hash, difficulty, clock
            )
            chain.initialize(chain.genesis_payload(
                message=f"Genesis block for student {student_id}",
                studentId=student_id,
                classId=class_id,
                departmentId=department_id,
                parentClassHash=parent_class_hash,
            ))
        super().__init__(chain)

    @classmethod
    def from_dict(
        cls,
        student_id: str,
        data: Dict[str, Any],
        clock: Optional[Clock] = None
    ) -> 'StudentChain':
        """
        Restore a student chain from a snapshot.

        Snapshots do not carry the class/department ids at chain level; they
        are read back from the genesis payload.
        """
        chain = Blockchain.from_dict(data, clock)
        genesis = chain.get_block(0)
        refs = genesis.payload if genesis is not None else {}
        return cls(
            student_id,
            class_id=refs.get('classId') or data.get('classId') or '',
            department_id=refs.get('departmentId') or data.get('departmentId') or '',
            chain=chain,
        )

    def _base_payload(self, action: str, entity_type: str) -> Dict[str, Any]:
        return {
            'action': action,
            'type': entity_type,
            'studentId': self.student_id,
            'classId': self.class_id,
            'departmentId': self.department_id,
        }

    # ========================================================================
    # Profile
    # ========================================================================

    def add_profile(self, student: Dict[str, Any]) -> Block:
        """
        Append the profile block.

        Args:
            student: Mapping with name, rollNumber and email
        """
        payload = self._base_payload(ACTION_ADD, STUDENT_SCHEMA.entity_type)
        payload.update({
            'name': student.get('name'),
            'rollNumber': student.get('rollNumber'),
            'email': student.get('email'),
            'status': STATUS_ACTIVE,
            'timestamp': self._timestamp(),
        })
        return self._append(payload)

    def update_profile(self, updates: Dict[str, Any]) -> Block:
        payload = self._base_payload(ACTION_UPDATE, STUDENT_SCHEMA.entity_type)
        payload.update({
            'updates': dict(updates),
            'status': STATUS_ACTIVE,
            'timestamp': self._timestamp(),
        })
        return self._append(payload)

    def delete_profile(self) -> Block:
        payload = self._base_payload(ACTION_DELETE, STUDENT_SCHEMA.entity_type)
        payload.update({
            'status': STATUS_DELETED,
            'timestamp': self._timestamp(),
        })
        return self._append(payload)

    def get_profile(self) -> Optional[Dict[str, Any]]:
        return STUDENT_SCHEMA.fold(self.payloads(), self.student_id)

    def is_active(self) -> bool:
        return is_active(self.get_profile())

    # ========================================================================
    # Attendance
    # ========================================================================

    def mark_attendance(self, status: str) -> Block:
        """
        Append an attendance block dated today by the chain's clock.

        The status is stored as given; callers validate it.
        """
        now = self.clock.now()
        payload = self._base_payload(ACTION_ATTENDANCE, ATTENDANCE_TYPE)
        payload.update({
            'attendanceStatus': status,
            'date': calendar_date(now),
            'timestamp': self._timestamp(),
        })
        return self._append(payload)

    @staticmethod
    def _attendance_record(block: Block) -> Dict[str, Any]:
        payload = block.payload
        return {
            'blockIndex': block.index,
            'studentId': payload.get('studentId'),
            'classId': payload.get('classId'),
            'departmentId': payload.get('departmentId'),
            'status': payload.get('attendanceStatus'),
            'date': payload.get('date'),
            'timestamp': payload.get('timestamp'),
            'hash': block.hash,
        }

    def all_attendance(self) -> List[Dict[str, Any]]:
        """Every attendance mark in chain order."""
        return [
            self._attendance_record(block)
            for block in self._chain
            if block.payload.get('type') == ATTENDANCE_TYPE
        ]

    def attendance_by_date(self, date: str) -> Optional[Dict[str, Any]]:
        """Latest attendance mark for a YYYY-MM-DD date, or None."""
        for block in reversed(self._chain):
            payload = block.payload
            if payload.get('type') == ATTENDANCE_TYPE and payload.get('date') == date:
                return self._attendance_record(block)
        return None

    def attendance_summary(self) -> Dict[str, Any]:
        """
        Count attendance marks by status.

        percentage is present/total*100 formatted to two decimals, or 0 when
        no attendance has been marked.
        """
        summary: Dict[str, Any] = {
            'totalDays': 0,
            'present': 0,
            'absent': 0,
            'leave': 0,
            'percentage': 0,
        }
        for payload in self.payloads():
            if payload.get('type') != ATTENDANCE_TYPE:
                continue
            summary['totalDays'] += 1
            status = str(payload.get('attendanceStatus', '')).lower()
            if status in ('present', 'absent', 'leave'):
                summary[status] += 1

        if summary['totalDays'] > 0:
            summary['percentage'] = f"{summary['present'] / summary['totalDays'] * 100:.2f}"
        return summary
