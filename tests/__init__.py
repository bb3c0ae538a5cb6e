# AttendChain Test Suite
"""
Test suite including:
- Unit tests (digest, blocks, chain engine, record chains)
- Manager tests (hierarchy, errors, validation, snapshots)
- Storage and configuration tests

Run with: pytest
"""
