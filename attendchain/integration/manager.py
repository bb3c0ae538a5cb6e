"""
Ledger Manager Module

Central owner of every chain in the system:
- one DepartmentChain (root)
- department id -> ClassChain, created lazily on the first class
- student id -> StudentChain, created when the student is added

Writes check that the required ancestors exist, then delegate to the owning
chain and return the mined block as a receipt. Reads replay chains and never
raise for a missing entity; they return None or an empty list instead.

All operations take one re-entrant lock, so writes, snapshot export and
snapshot import never interleave.
"""

import functools
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from ..blockchain.class_chain import ClassChain
from ..blockchain.clock import Clock, SystemClock, calendar_date
from ..blockchain.department_chain import DepartmentChain
from ..blockchain.ledger import Block
from ..blockchain.records import is_active
from ..blockchain.student_chain import StudentChain
from ..config import DEFAULT_DIFFICULTY, VALID_ATTENDANCE_STATUSES
from ..errors import InvalidArgumentError, LedgerError, NotFoundError


logger = logging.getLogger(__name__)

NOT_MARKED = 'Not Marked'


def _synchronized(method: Callable) -> Callable:
    """Run the method while holding the manager's lock."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


def _require_id(data: Dict[str, Any], entity: str) -> str:
    if not isinstance(data, dict):
        raise InvalidArgumentError(f"{entity.capitalize()} data must be a mapping")
    entity_id = data.get('id')
    if not entity_id or not isinstance(entity_id, str):
        raise InvalidArgumentError(f"{entity.capitalize()} id is required")
    return entity_id


def _tip_hash(entity_chain) -> Optional[str]:
    """Hash of the chain's last block, or None for a missing or empty chain."""
    if entity_chain is None or not entity_chain.length:
        return None
    return entity_chain.latest().hash


def _parse_snapshot(data: Dict[str, Any], clock: Clock):
    """
    Rebuild every chain of a manager snapshot.

    Returns:
        (department_chain, class_chains, student_chains)

    Raises:
        InvalidArgumentError: The snapshot is malformed or holds a chain
            without blocks
    """
    if not isinstance(data, dict) or not isinstance(data.get('departmentChain'), dict):
        raise InvalidArgumentError("Snapshot must contain a departmentChain")

    try:
        department_chain = DepartmentChain.from_dict(data['departmentChain'], clock)
        class_chains = {
            department_id: ClassChain.from_dict(department_id, chain_data, clock)
            for department_id, chain_data in (data.get('classChains') or {}).items()
        }
        student_chains = {
            student_id: StudentChain.from_dict(student_id, chain_data, clock)
            for student_id, chain_data in (data.get('studentChains') or {}).items()
        }
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidArgumentError(f"Malformed snapshot: {e}") from e

    chains = [department_chain, *class_chains.values(), *student_chains.values()]
    for entity_chain in chains:
        if not entity_chain.length:
            raise InvalidArgumentError(
                f"Malformed snapshot: {entity_chain.chain_type} chain has no blocks"
            )
    return department_chain, class_chains, student_chains


def _require_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(updates, dict):
        raise InvalidArgumentError("Updates must be a mapping")
    return updates


class LedgerManager:
    """
    Three-tier academic ledger: departments -> classes -> students.
    """

    def __init__(
        self,
        difficulty: int = DEFAULT_DIFFICULTY,
        clock: Optional[Clock] = None,
        department_chain: Optional[DepartmentChain] = None
    ):
        """
        Args:
            difficulty: PoW difficulty for every chain this manager creates
            clock: Time source shared by all chains
            department_chain: Existing root chain; a new one is mined when omitted
        """
        self._difficulty = difficulty
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()
        if department_chain is None:
            department_chain = DepartmentChain(difficulty, self._clock)
        self.department_chain = department_chain
        self.class_chains: Dict[str, ClassChain] = {}
        self.student_chains: Dict[str, StudentChain] = {}

    @property
    def difficulty(self) -> int:
        return self._difficulty

    @property
    def lock(self) -> threading.RLock:
        """Lock serialising writes and snapshots."""
        return self._lock

    # ========================================================================
    # Departments
    # ========================================================================

    @_synchronized
    def add_department(self, department: Dict[str, Any]) -> Block:
        """
        Record a new department.

        Raises:
            InvalidArgumentError: Missing id, or the department is already active
        """
        department_id = _require_id(department, 'department')
        if self.department_chain.department_exists(department_id):
            raise InvalidArgumentError(f"Department '{department_id}' already exists")

        block = self.department_chain.add_department(department)
        logger.info("Added department %s (block %d)", department_id, block.index)
        return block

    @_synchronized
    def update_department(self, department_id: str, updates: Dict[str, Any]) -> Block:
        if not self.department_chain.department_exists(department_id):
            raise NotFoundError('department', department_id)
        return self.department_chain.update_department(department_id, _require_updates(updates))

    @_synchronized
    def delete_department(self, department_id: str) -> Block:
        if not self.department_chain.department_exists(department_id):
            raise NotFoundError('department', department_id)
        block = self.department_chain.delete_department(department_id)
        logger.info("Deleted department %s (block %d)", department_id, block.index)
        return block

    @_synchronized
    def get_department(self, department_id: str) -> Optional[Dict[str, Any]]:
        return self.department_chain.get_department(department_id)

    @_synchronized
    def list_departments(self) -> List[Dict[str, Any]]:
        return self.department_chain.get_all_departments()

    @_synchronized
    def department_exists(self, department_id: str) -> bool:
        return self.department_chain.department_exists(department_id)

    # ========================================================================
    # Classes
    # ========================================================================

    @_synchronized
    def add_class(self, department_id: str, class_data: Dict[str, Any]) -> Block:
        """
        Record a new class under an active department.

        The department's class chain is created on first use, rooted at the
        department chain's tip hash at that moment.

        Raises:
            NotFoundError: Department missing or deleted
            InvalidArgumentError: Missing id, the class is already active, or
                the class data cannot be serialised; no chain is created
        """
        if not self.department_chain.department_exists(department_id):
            raise NotFoundError('department', department_id)
        class_id = _require_id(class_data, 'class')

        class_chain = self.class_chains.get(department_id)
        if class_chain is not None and class_chain.class_exists(class_id):
            raise InvalidArgumentError(
                f"Class '{class_id}' already exists in department '{department_id}'"
            )

        if class_chain is None:
            parent_hash = self.department_chain.latest().hash
            class_chain = ClassChain(department_id, parent_hash, self._difficulty, self._clock)
            block = class_chain.add_class(class_data)
            self.class_chains[department_id] = class_chain
        else:
            block = class_chain.add_class(class_data)
        logger.info("Added class %s to department %s (block %d)", class_id, department_id, block.index)
        return block

    def _active_class_chain(self, department_id: str, class_id: str) -> ClassChain:
        class_chain = self.class_chains.get(department_id)
        if class_chain is None or not class_chain.class_exists(class_id):
            raise NotFoundError('class', class_id)
        return class_chain

    @_synchronized
    def update_class(self, department_id: str, class_id: str, updates: Dict[str, Any]) -> Block:
        class_chain = self._active_class_chain(department_id, class_id)
        return class_chain.update_class(class_id, _require_updates(updates))

    @_synchronized
    def delete_class(self, department_id: str, class_id: str) -> Block:
        class_chain = self._active_class_chain(department_id, class_id)
        block = class_chain.delete_class(class_id)
        logger.info("Deleted class %s in department %s", class_id, department_id)
        return block

    @_synchronized
    def get_class(self, department_id: str, class_id: str) -> Optional[Dict[str, Any]]:
        class_chain = self.class_chains.get(department_id)
        if class_chain is None:
            return None
        return class_chain.get_class(class_id)

    @_synchronized
    def classes_by_department(self, department_id: str) -> List[Dict[str, Any]]:
        class_chain = self.class_chains.get(department_id)
        if class_chain is None:
            return []
        return class_chain.get_all_classes()

    @_synchronized
    def list_classes(self) -> List[Dict[str, Any]]:
        classes = []
        for class_chain in self.class_chains.values():
            classes.extend(class_chain.get_all_classes())
        return classes

    # ========================================================================
    # Students
    # ========================================================================

    @_synchronized
    def add_student(self, department_id: str, class_id: str, student: Dict[str, Any]) -> Block:
        """
        Create a student chain under an active class and record the profile.

        The chain's genesis links to the class chain's tip hash at this moment.

        Returns:
            The profile block (index 1 of the new chain)

        Raises:
            NotFoundError: Department or class missing or deleted
            InvalidArgumentError: Missing id, or a chain already exists for the id
        """
        if not self.department_chain.department_exists(department_id):
            raise NotFoundError('department', department_id)
        class_chain = self._active_class_chain(department_id, class_id)
        student_id = _require_id(student, 'student')
        if student_id in self.student_chains:
            raise InvalidArgumentError(f"Student '{student_id}' already exists")

        student_chain = StudentChain(
            student_id,
            class_id,
            department_id,
            class_chain.latest().hash,
            self._difficulty,
            self._clock,
        )
        block = student_chain.add_profile(student)
        self.student_chains[student_id] = student_chain
        logger.info("Added student %s to class %s", student_id, class_id)
        return block

    def _active_student_chain(self, student_id: str) -> StudentChain:
        student_chain = self.student_chains.get(student_id)
        if student_chain is None or not student_chain.is_active():
            raise NotFoundError('student', student_id)
        return student_chain

    @_synchronized
    def update_student(self, student_id: str, updates: Dict[str, Any]) -> Block:
        return self._active_student_chain(student_id).update_profile(_require_updates(updates))

    @_synchronized
    def delete_student(self, student_id: str) -> Block:
        block = self._active_student_chain(student_id).delete_profile()
        logger.info("Deleted student %s", student_id)
        return block

    @_synchronized
    def get_student(self, student_id: str) -> Optional[Dict[str, Any]]:
        student_chain = self.student_chains.get(student_id)
        if student_chain is None:
            return None
        return student_chain.get_profile()

    def _active_students(self, predicate: Callable[[Dict[str, Any]], bool] = lambda s: True):
        for student_chain in self.student_chains.values():
            profile = student_chain.get_profile()
            if is_active(profile) and predicate(profile):
                yield student_chain, profile

    @_synchronized
    def list_students(self) -> List[Dict[str, Any]]:
        return [profile for _, profile in self._active_students()]

    @_synchronized
    def students_by_class(self, class_id: str) -> List[Dict[str, Any]]:
        return [
            profile for _, profile in self._active_students(
                lambda s: s.get('classId') == class_id
            )
        ]

    @_synchronized
    def students_by_department(self, department_id: str) -> List[Dict[str, Any]]:
        return [
            profile for _, profile in self._active_students(
                lambda s: s.get('departmentId') == department_id
            )
        ]

    @_synchronized
    def search_students(self, query: str) -> List[Dict[str, Any]]:
        """Case-insensitive substring match on name or roll number."""
        term = (query or '').lower()

        def matches(profile: Dict[str, Any]) -> bool:
            name = str(profile.get('name') or '').lower()
            roll = str(profile.get('rollNumber') or '').lower()
            return term in name or term in roll

        return [profile for _, profile in self._active_students(matches)]

    # ========================================================================
    # Attendance
    # ========================================================================

    @_synchronized
    def mark_attendance(self, student_id: str, status: str) -> Block:
        """
        Append an attendance block to the student's chain.

        Raises:
            NotFoundError: No active student with this id
            InvalidArgumentError: status is not Present, Absent or Leave
        """
        student_chain = self._active_student_chain(student_id)
        if status not in VALID_ATTENDANCE_STATUSES:
            raise InvalidArgumentError(
                f"Invalid attendance status '{status}'; "
                f"expected one of {', '.join(VALID_ATTENDANCE_STATUSES)}"
            )
        return student_chain.mark_attendance(status)

    @_synchronized
    def student_attendance(self, student_id: str) -> List[Dict[str, Any]]:
        student_chain = self.student_chains.get(student_id)
        if student_chain is None:
            return []
        return student_chain.all_attendance()

    @_synchronized
    def attendance_summary(self, student_id: str) -> Optional[Dict[str, Any]]:
        student_chain = self.student_chains.get(student_id)
        if student_chain is None:
            return None
        return student_chain.attendance_summary()

    @_synchronized
    def attendance_by_date(self, student_id: str, date: str) -> Optional[Dict[str, Any]]:
        student_chain = self.student_chains.get(student_id)
        if student_chain is None:
            return None
        return student_chain.attendance_by_date(date)

    @_synchronized
    def class_attendance_on(self, class_id: str, date: str) -> List[Dict[str, Any]]:
        """Attendance of every active student in a class for one date."""
        sheet = []
        for student_chain, profile in self._active_students(
            lambda s: s.get('classId') == class_id
        ):
            record = student_chain.attendance_by_date(date)
            sheet.append({
                'student': profile,
                'attendance': record or {'status': NOT_MARKED, 'date': date},
            })
        return sheet

    def today_attendance_by_class(self, class_id: str) -> List[Dict[str, Any]]:
        return self.class_attendance_on(class_id, calendar_date(self._clock.now()))

    # ========================================================================
    # Chain access
    # ========================================================================

    @_synchronized
    def department_blocks(self) -> List[Block]:
        return self.department_chain.blocks

    @_synchronized
    def class_blocks(self, department_id: str) -> Optional[List[Block]]:
        class_chain = self.class_chains.get(department_id)
        return class_chain.blocks if class_chain is not None else None

    @_synchronized
    def student_blocks(self, student_id: str) -> Optional[List[Block]]:
        student_chain = self.student_chains.get(student_id)
        return student_chain.blocks if student_chain is not None else None

    # ========================================================================
    # Validation
    # ========================================================================

    @staticmethod
    def _parent_reference_valid(child, parent) -> bool:
        """
        Ancestry check for a child chain.

        The genesis prev_hash must equal the parent hash recorded when the
        child was created, and that hash must belong to a block of the parent
        chain. The parent may have grown since; only the recorded block
        must still be part of it.
        """
        genesis = child.genesis()
        if genesis is None or parent is None or not child.parent_hash:
            return False
        return (
            genesis.prev_hash == child.parent_hash and
            parent.chain.contains_hash(child.parent_hash)
        )

    @_synchronized
    def validate_all_chains(self) -> Dict[str, Any]:
        """
        Validate every chain and every parent link.

        Never raises; every problem found is listed in `errors`.

        Returns:
            Report with isValid, departmentChain, classChains, studentChains
            and errors. Each child entry carries chainValid, parentRefValid
            (ancestry check, counted towards isValid) and parentIsTip (whether
            the parent's current tip is still the recorded parent hash,
            informational only).
        """
        report: Dict[str, Any] = {
            'isValid': True,
            'departmentChain': {'isValid': False, 'message': ''},
            'classChains': [],
            'studentChains': [],
            'errors': [],
        }

        try:
            problems = self.department_chain.validate()
            report['departmentChain']['isValid'] = not problems
            report['departmentChain']['message'] = 'Valid' if not problems else 'Invalid'
            if problems:
                report['isValid'] = False
                report['errors'].append(f"Department chain is invalid: {'; '.join(problems)}")

            department_tip = _tip_hash(self.department_chain)
            for department_id, class_chain in self.class_chains.items():
                problems = class_chain.validate()
                parent_ref_valid = self._parent_reference_valid(class_chain, self.department_chain)
                entry = {
                    'departmentId': department_id,
                    'isValid': not problems and parent_ref_valid,
                    'chainValid': not problems,
                    'parentRefValid': parent_ref_valid,
                    'parentIsTip': (
                        department_tip is not None and
                        class_chain.validate_parent_reference(department_tip)
                    ),
                }
                report['classChains'].append(entry)
                if not entry['isValid']:
                    report['isValid'] = False
                    reasons = list(problems)
                    if not parent_ref_valid:
                        reasons.append("parent reference not found in department chain")
                    report['errors'].append(
                        f"Class chain for department {department_id} is invalid: {'; '.join(reasons)}"
                    )

            for student_id, student_chain in self.student_chains.items():
                problems = student_chain.validate()
                class_chain = self.class_chains.get(student_chain.department_id)
                parent_ref_valid = self._parent_reference_valid(student_chain, class_chain)
                class_tip = _tip_hash(class_chain)
                parent_is_tip = (
                    class_tip is not None and
                    student_chain.validate_parent_reference(class_tip)
                )
                entry = {
                    'studentId': student_id,
                    'isValid': not problems and parent_ref_valid,
                    'chainValid': not problems,
                    'parentRefValid': parent_ref_valid,
                    'parentIsTip': parent_is_tip,
                }
                report['studentChains'].append(entry)
                if not entry['isValid']:
                    report['isValid'] = False
                    reasons = list(problems)
                    if not parent_ref_valid:
                        reasons.append("parent reference not found in class chain")
                    report['errors'].append(
                        f"Student chain for {student_id} is invalid: {'; '.join(reasons)}"
                    )
        except (LedgerError, LookupError, TypeError, ValueError, AttributeError) as e:
            # Malformed imported data; reported, not raised
            report['isValid'] = False
            report['errors'].append(f"Validation error: {e}")

        if not report['isValid']:
            logger.warning("Ledger validation failed with %d error(s)", len(report['errors']))
        return report

    # ========================================================================
    # Export / Import
    # ========================================================================

    @_synchronized
    def export_snapshot(self) -> Dict[str, Any]:
        """Serialise all three tiers, keyed by department id and student id."""
        return {
            'departmentChain': self.department_chain.to_dict(),
            'classChains': {
                department_id: class_chain.to_dict()
                for department_id, class_chain in self.class_chains.items()
            },
            'studentChains': {
                student_id: student_chain.to_dict()
                for student_id, student_chain in self.student_chains.items()
            },
        }

    @_synchronized
    def import_snapshot(self, data: Dict[str, Any]) -> None:
        """
        Replace all chains with the snapshot's, trusting stored hashes.

        The current state is only replaced once the whole snapshot has been
        parsed.

        Raises:
            InvalidArgumentError: The snapshot is malformed or holds a chain
                without blocks
        """
        department_chain, class_chains, student_chains = _parse_snapshot(data, self._clock)
        self.department_chain = department_chain
        self.class_chains = class_chains
        self.student_chains = student_chains
        logger.info(
            "Imported snapshot: %d class chain(s), %d student chain(s)",
            len(class_chains), len(student_chains)
        )

    @classmethod
    def from_snapshot(
        cls,
        data: Dict[str, Any],
        difficulty: int = DEFAULT_DIFFICULTY,
        clock: Optional[Clock] = None
    ) -> 'LedgerManager':
        """Build a manager directly from a snapshot; no genesis block is mined."""
        clock = clock or SystemClock()
        department_chain, class_chains, student_chains = _parse_snapshot(data, clock)
        manager = cls(difficulty=difficulty, clock=clock, department_chain=department_chain)
        manager.class_chains = class_chains
        manager.student_chains = student_chains
        return manager

    @_synchronized
    def reset(self) -> None:
        """Drop every chain and start over with a fresh department chain."""
        self.department_chain = DepartmentChain(self._difficulty, self._clock)
        self.class_chains = {}
        self.student_chains = {}
        logger.info("Ledger reset")

    # ========================================================================
    # Statistics
    # ========================================================================

    @_synchronized
    def total_blocks(self) -> int:
        total = self.department_chain.length
        total += sum(chain.length for chain in self.class_chains.values())
        total += sum(chain.length for chain in self.student_chains.values())
        return total

    @_synchronized
    def system_stats(self) -> Dict[str, Any]:
        return {
            'departments': len(self.list_departments()),
            'classes': len(self.list_classes()),
            'students': len(self.list_students()),
            'departmentBlocks': self.department_chain.length,
            'totalBlocks': self.total_blocks(),
            'isValid': self.validate_all_chains()['isValid'],
        }
