"""
Shared plumbing for the department, class and student chains.

Each specialised chain holds a Blockchain engine:
it computes its genesis payload first and hands it to
Blockchain.initialize(), then expresses every write as Blockchain.append().
"""

from typing import Any, Dict, List, Optional

from .clock import Clock, iso_timestamp
from .ledger import Block, Blockchain


class EntityChain:
    """Read/write surface common to all record chains."""

    def __init__(self, chain: Blockchain):
        self._chain = chain

    @property
    def chain(self) -> Blockchain:
        """The underlying chain engine."""
        return self._chain

    @property
    def chain_type(self) -> str:
        return self._chain.chain_type

    @property
    def parent_hash(self) -> Optional[str]:
        return self._chain.parent_hash

    @property
    def clock(self) -> Clock:
        return self._chain.clock

    @property
    def length(self) -> int:
        return self._chain.length

    @property
    def blocks(self) -> List[Block]:
        return self._chain.blocks

    def latest(self) -> Block:
        return self._chain.latest()

    def get_block(self, index: int) -> Optional[Block]:
        return self._chain.get_block(index)

    def genesis(self) -> Optional[Block]:
        return self._chain.get_block(0)

    def payloads(self) -> List[Dict[str, Any]]:
        """Block payloads in index order."""
        return [block.payload for block in self._chain]

    def is_valid(self) -> bool:
        return self._chain.is_valid()

    def validate(self) -> List[str]:
        return self._chain.validate()

    def validate_parent_reference(self, expected_parent_hash: str) -> bool:
        return self._chain.validate_parent_reference(expected_parent_hash)

    def stats(self) -> Dict[str, Any]:
        return self._chain.stats()

    def to_dict(self) -> Dict[str, Any]:
        return self._chain.to_dict()

    def _timestamp(self) -> str:
        return iso_timestamp(self._chain.clock.now())

    def _append(self, payload: Dict[str, Any]) -> Block:
        return self._chain.append(payload)
