"""
Event-sourced record reconstruction.

Current entity state is never stored; it is derived by folding a chain's
payloads in index order:
- add     seeds the record (a later add re-seeds it)
- update  merges `updates` into an existing record, ignored otherwise
- delete  sets status to "deleted" on an existing record, ignored otherwise

Every read replays the chain. There is no secondary index to keep in sync.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple


STATUS_ACTIVE = 'active'
STATUS_DELETED = 'deleted'

ACTION_ADD = 'add'
ACTION_UPDATE = 'update'
ACTION_DELETE = 'delete'
ACTION_ATTENDANCE = 'attendance'


@dataclass(frozen=True)
class RecordSchema:
    """
    How one entity type is stored in payloads and shaped as a record.

    `fields` maps record keys to the payload keys they are seeded from on add.
    """
    entity_type: str
    id_key: str
    fields: Tuple[Tuple[str, str], ...]

    def matches(self, payload: Dict[str, Any], entity_id: Any) -> bool:
        return (
            payload.get('type') == self.entity_type and
            payload.get(self.id_key) == entity_id
        )

    def seed(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {record_key: payload.get(payload_key) for record_key, payload_key in self.fields}

    def fold(self, payloads: Iterable[Dict[str, Any]], entity_id: Any) -> Optional[Dict[str, Any]]:
        """
        Replay payloads and return the current record for entity_id.

        Returns:
            The record, or None if no add was ever observed
        """
        record: Optional[Dict[str, Any]] = None
        for payload in payloads:
            if not self.matches(payload, entity_id):
                continue
            action = payload.get('action')
            if action == ACTION_ADD:
                record = self.seed(payload)
            elif action == ACTION_UPDATE:
                if record is not None:
                    record = {**record, **(payload.get('updates') or {})}
            elif action == ACTION_DELETE:
                if record is not None:
                    record = {**record, 'status': STATUS_DELETED}
        return record

    def touched_ids(self, payloads: Iterable[Dict[str, Any]]) -> List[Any]:
        """Ids of this entity type, most recently touched first."""
        seen = []
        for payload in reversed(list(payloads)):
            if payload.get('type') != self.entity_type:
                continue
            entity_id = payload.get(self.id_key)
            if entity_id and entity_id not in seen:
                seen.append(entity_id)
        return seen

    def active_records(self, payloads: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Current records with status active, most recently touched first."""
        payloads = list(payloads)
        records = []
        for entity_id in self.touched_ids(payloads):
            record = self.fold(payloads, entity_id)
            if is_active(record):
                records.append(record)
        return records


def is_active(record: Optional[Dict[str, Any]]) -> bool:
    return record is not None and record.get('status') == STATUS_ACTIVE


DEPARTMENT_SCHEMA = RecordSchema(
    entity_type='department',
    id_key='departmentId',
    fields=(
        ('id', 'departmentId'),
        ('name', 'name'),
        ('head', 'head'),
        ('status', 'status'),
    ),
)

CLASS_SCHEMA = RecordSchema(
    entity_type='class',
    id_key='classId',
    fields=(
        ('id', 'classId'),
        ('departmentId', 'departmentId'),
        ('name', 'name'),
        ('teacher', 'teacher'),
        ('capacity', 'capacity'),
        ('status', 'status'),
    ),
)

STUDENT_SCHEMA = RecordSchema(
    entity_type='student',
    id_key='studentId',
    fields=(
        ('studentId', 'studentId'),
        ('classId', 'classId'),
        ('departmentId', 'departmentId'),
        ('name', 'name'),
        ('rollNumber', 'rollNumber'),
        ('email', 'email'),
        ('status', 'status'),
    ),
)
