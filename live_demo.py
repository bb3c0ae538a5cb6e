#!/usr/bin/env python
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                         ATTENDCHAIN LIVE DEMO                                 ║
║                Hash-linked academic records walkthrough                       ║
╚══════════════════════════════════════════════════════════════════════════════╝

This script walks through the AttendChain ledger:
- Department records with proof-of-work blocks
- Class and student chains linked to their parent chains
- Attendance marking and summaries
- Tamper detection across every chain
- Snapshot export and import

Run with --no-pause to skip the presenter pauses.
"""

import sys

from attendchain.integration.manager import LedgerManager
from attendchain.errors import InvalidArgumentError, NotFoundError


PAUSES = '--no-pause' not in sys.argv


def print_header(title):
    """Print a formatted section header"""
    print("\n" + "═" * 70)
    print(f"  {title}")
    print("═" * 70)


def print_step(step_num, description):
    """Print a numbered step"""
    print(f"\n  [{step_num}] {description}")


def pause(message="Press ENTER to continue..."):
    """Pause for presenter to explain"""
    if not PAUSES:
        return
    print(f"\n  [PAUSE] {message}")
    input()


def show_block(block):
    print(f"  Block #{block.index}")
    print(f"  - Hash:          {block.hash[:32]}...")
    print(f"  - Previous Hash: {block.prev_hash[:32]}...")
    print(f"  - Nonce:         {block.nonce}")


def main():

    print("\n" * 2)
    print("╔" + "═" * 68 + "╗")
    print("║" + "        ATTENDCHAIN - BLOCKCHAIN ACADEMIC LEDGER".center(68) + "║")
    print("╚" + "═" * 68 + "╝")

    print("\n  This demonstration showcases:")
    print("  • Department, class and student chains")
    print("  • SHA-256 proof of work (difficulty 4)")
    print("  • Attendance summaries rebuilt from the chain")
    print("  • Tamper detection and snapshot restore")

    pause("Press ENTER to begin the demonstration...")

    print_header("PART 1: DEPARTMENTS")

    ledger = LedgerManager(difficulty=4)

    print_step("1.1", "Adding department 'Computer Science'")
    block = ledger.add_department({'id': 'CS', 'name': 'Computer Science', 'head': 'Dr. Alice'})
    show_block(block)
    print(f"\n  Record: {ledger.get_department('CS')}")

    pause()

    print_step("1.2", "Changing the head of department")
    ledger.update_department('CS', {'head': 'Dr. Bob'})
    print(f"  Record: {ledger.get_department('CS')}")

    print_step("1.3", "Adding and deleting a second department")
    ledger.add_department({'id': 'ART', 'name': 'Fine Arts', 'head': 'Prof. Eve'})
    ledger.delete_department('ART')
    print(f"  ART exists: {ledger.department_exists('ART')}")
    print(f"  Active departments: {[d['id'] for d in ledger.list_departments()]}")
    print(f"  Department chain length: {ledger.department_chain.length} blocks")

    pause()

    print_header("PART 2: CLASSES AND STUDENTS")

    print_step("2.1", "Creating class 'CS101' (opens the department's class chain)")
    ledger.add_class('CS', {'id': 'CS101', 'name': 'Intro to Programming', 'teacher': 'Mr. Kim', 'capacity': 40})
    class_chain = ledger.class_chains['CS']
    print(f"  Class chain genesis links to: {class_chain.genesis().prev_hash[:32]}...")

    print_step("2.2", "Enrolling students")
    for student_id, name, roll in (('S1', 'Dana Reyes', 'CS-001'), ('S2', 'Omar Haddad', 'CS-002')):
        ledger.add_student('CS', 'CS101', {
            'id': student_id, 'name': name, 'rollNumber': roll, 'email': f"{student_id.lower()}@uni.edu"
        })
        print(f"  [OK] {student_id}: {name}")

    print_step("2.3", "Rejected writes")
    try:
        ledger.add_class('ART', {'id': 'X1', 'name': 'Sculpture', 'teacher': 'n/a', 'capacity': 5})
    except NotFoundError as e:
        print(f"  [X] {e}")
    try:
        ledger.mark_attendance('S1', 'Sick')
    except InvalidArgumentError as e:
        print(f"  [X] {e}")

    pause()

    print_header("PART 3: ATTENDANCE")

    print_step("3.1", "Marking today's attendance")
    ledger.mark_attendance('S1', 'Present')
    ledger.mark_attendance('S2', 'Absent')
    for row in ledger.today_attendance_by_class('CS101'):
        print(f"  {row['student']['name']:<14} {row['attendance']['status']}")

    print_step("3.2", "Summary for S1")
    print(f"  {ledger.attendance_summary('S1')}")

    pause()

    print_header("PART 4: INTEGRITY")

    print_step("4.1", "Validating every chain")
    report = ledger.validate_all_chains()
    print(f"  System valid: {'[OK] VALID' if report['isValid'] else '[X] TAMPERED'}")

    print_step("4.2", "Tampering with S2's attendance block")
    snapshot = ledger.export_snapshot()
    ledger.student_chains['S2'].latest().payload['attendanceStatus'] = 'Present'
    report = ledger.validate_all_chains()
    print(f"  System valid: {'[OK] VALID' if report['isValid'] else '[X] TAMPERED'}")
    for error in report['errors']:
        print(f"  ! {error}")

    pause()

    print_header("PART 5: SNAPSHOT RESTORE")

    restored = LedgerManager.from_snapshot(snapshot)
    stats = restored.system_stats()
    print(f"  Departments:  {stats['departments']}")
    print(f"  Classes:      {stats['classes']}")
    print(f"  Students:     {stats['students']}")
    print(f"  Total blocks: {stats['totalBlocks']}")
    print(f"  Chains valid: {'[OK] VALID' if stats['isValid'] else '[X] TAMPERED'}")
    print(f"  S2 summary:   {restored.attendance_summary('S2')}")

    print("\n\n" + "═" * 70)
    print("  DEMONSTRATION COMPLETE!")
    print("═" * 70)


if __name__ == "__main__":
    main()
