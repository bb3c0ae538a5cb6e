"""
Blockchain Ledger Module

Implements the generic chain engine every academic-record chain is built on:
- SHA-256 hash linking (block.prev_hash == previous block's hash)
- Proof of Work: hash must start with `difficulty` zero hex characters
- Full chain validation, reported as data rather than raised
- Snapshot export/import that never re-mines

Chains are append-only. `Blockchain.append` is the only mutation; a chain is
created empty and seeded through `initialize(genesis_payload)`, so the
specialised chains compute their own genesis payload before handing it over.
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any

from ..config import DEFAULT_DIFFICULTY, MAX_DIFFICULTY
from ..core_crypto.digest import compute_block_hash, header_prefix, sha256_hex
from ..errors import EmptyChainError, InvalidArgumentError, LedgerError
from .clock import Clock, SystemClock, epoch_millis, iso_timestamp


logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

GENESIS_PREV_HASH = "0"  # prev_hash of a root chain's genesis block
GENERIC_CHAIN_TYPE = "generic"


# ============================================================================
# Block Structure
# ============================================================================

@dataclass
class Block:
    """
    A single hash-linked unit of payload data.

    The hash covers index, timestamp, payload, prev_hash and nonce. Once
    mined and appended a block is never modified by the ledger; validation
    recomputes the hash to detect anything that was.
    """
    index: int
    timestamp: int  # epoch milliseconds
    payload: Dict[str, Any]
    prev_hash: str
    nonce: int = 0
    hash: str = ""

    @classmethod
    def create(
        cls,
        index: int,
        timestamp: int,
        payload: Dict[str, Any],
        prev_hash: str
    ) -> 'Block':
        """Build an unmined block (nonce 0) with its hash filled in."""
        block = cls(index=index, timestamp=timestamp, payload=payload, prev_hash=prev_hash)
        block.hash = block.calculate_hash()
        return block

    def calculate_hash(self) -> str:
        """Recompute the hash from the current field values."""
        return compute_block_hash(
            self.index, self.timestamp, self.payload, self.prev_hash, self.nonce
        )

    def mine(self, difficulty: int = DEFAULT_DIFFICULTY) -> str:
        """
        Increment the nonce until the hash satisfies the difficulty target.

        There is no iteration cap; expected work is about 16 ** difficulty
        hashes. With difficulty 0 the nonce is left unchanged.

        Returns:
            The proof-valid hash
        """
        target = '0' * difficulty
        started = time.perf_counter()
        # Only the nonce changes between attempts
        prefix = header_prefix(self.index, self.timestamp, self.payload, self.prev_hash)
        nonce = self.nonce
        block_hash = sha256_hex(f"{prefix}{nonce}".encode('utf-8'))
        while block_hash[:difficulty] != target:
            nonce += 1
            block_hash = sha256_hex(f"{prefix}{nonce}".encode('utf-8'))

        self.nonce = nonce
        self.hash = block_hash
        logger.debug(
            "Mined block %d: %s (nonce=%d, %.1fms)",
            self.index, block_hash, nonce, (time.perf_counter() - started) * 1000
        )
        return block_hash

    def is_hash_valid(self) -> bool:
        """True if the stored hash matches the block's current contents."""
        return self.calculate_hash() == self.hash

    def has_valid_proof_of_work(self, difficulty: int = DEFAULT_DIFFICULTY) -> bool:
        """Check the leading-zero run only; does not re-verify the hash."""
        return self.hash[:difficulty] == '0' * difficulty

    @property
    def transactions(self) -> Dict[str, Any]:
        """Snapshot name for the payload."""
        return self.payload

    def receipt(self) -> Dict[str, Any]:
        """Short write receipt handed back to callers."""
        return {
            'index': self.index,
            'hash': self.hash,
            'timestamp': self.timestamp,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert block to dictionary for serialization."""
        return {
            'index': self.index,
            'timestamp': self.timestamp,
            'transactions': self.payload,
            'prev_hash': self.prev_hash,
            'nonce': self.nonce,
            'hash': self.hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Block':
        """Restore a block verbatim, stored nonce and hash included."""
        return cls(
            index=data['index'],
            timestamp=data['timestamp'],
            payload=data['transactions'],
            prev_hash=data['prev_hash'],
            nonce=data['nonce'],
            hash=data['hash'],
        )

    def __str__(self) -> str:
        return (
            f"Block #{self.index}\n"
            f"  Hash: {self.hash[:16]}...\n"
            f"  Prev: {self.prev_hash[:16]}...\n"
            f"  Nonce: {self.nonce}\n"
            f"  Type: {self.payload.get('type')}"
        )


# ============================================================================
# Proof of Work
# ============================================================================

class ProofOfWork:
    """
    Difficulty target for a chain.

    Difficulty is measured in leading zero HEX characters of the hash.
    """

    def __init__(self, difficulty: int = DEFAULT_DIFFICULTY):
        if not 0 <= difficulty <= MAX_DIFFICULTY:
            raise ValueError(f"Difficulty must be between 0 and {MAX_DIFFICULTY}")
        self.difficulty = difficulty

    @property
    def target(self) -> str:
        """Required hash prefix."""
        return '0' * self.difficulty

    def hash_meets_target(self, block_hash: str) -> bool:
        return block_hash.startswith(self.target)

    @staticmethod
    def count_leading_zeros(block_hash: str) -> int:
        """Count leading zero hex characters in a hash."""
        return len(block_hash) - len(block_hash.lstrip('0'))


# ============================================================================
# Validation
# ============================================================================

def verify_blocks(blocks: List[Block], difficulty: int) -> List[str]:
    """
    Check hash, proof-of-work and linkage of every non-genesis block.

    Returns:
        One message per problem found; empty when the sequence is valid
    """
    if not blocks:
        return ["Chain is empty"]

    problems = []
    pow_ = ProofOfWork(difficulty)
    for i in range(1, len(blocks)):
        current, previous = blocks[i], blocks[i - 1]
        if not current.is_hash_valid():
            problems.append(f"Block {i} has invalid hash")
        if not pow_.hash_meets_target(current.hash):
            problems.append(f"Block {i} has invalid proof of work")
        if current.prev_hash != previous.hash:
            problems.append(f"Block {i} has invalid prev_hash")
    return problems


# ============================================================================
# Blockchain
# ============================================================================

class Blockchain:
    """
    Ordered, append-only sequence of mined blocks.

    Features:
    - Genesis block supplied by the owner via initialize()
    - Every append is mined at the chain's difficulty (blocking)
    - Linkage to a parent chain through the genesis prev_hash
    - Full chain validation
    """

    def __init__(
        self,
        chain_type: str = GENERIC_CHAIN_TYPE,
        parent_hash: Optional[str] = None,
        difficulty: int = DEFAULT_DIFFICULTY,
        clock: Optional[Clock] = None
    ):
        """
        Create an empty chain; call initialize() to mine the genesis block.

        Args:
            chain_type: Tag stored in the genesis payload and snapshots
            parent_hash: Parent chain tip hash captured at creation time
            difficulty: PoW difficulty (leading zero hex characters)
            clock: Time source for block timestamps
        """
        self.chain_type = chain_type
        self.parent_hash = parent_hash
        self._pow = ProofOfWork(difficulty)
        self._clock = clock or SystemClock()
        self._chain: List[Block] = []

    def genesis_payload(self, message: Optional[str] = None, **references: Any) -> Dict[str, Any]:
        """Build the standard genesis payload, with optional parent references."""
        payload: Dict[str, Any] = {
            'type': 'genesis',
            'chainType': self.chain_type,
        }
        payload.update(references)
        payload['message'] = message or f"Genesis block for {self.chain_type} chain"
        payload['createdAt'] = iso_timestamp(self._clock.now())
        return payload

    def initialize(self, genesis_payload: Optional[Dict[str, Any]] = None) -> Block:
        """
        Mine and append the genesis block.

        Raises:
            LedgerError: If the chain already has blocks
        """
        if self._chain:
            raise LedgerError(f"{self.chain_type} chain is already initialized")

        payload = genesis_payload if genesis_payload is not None else self.genesis_payload()
        genesis = Block.create(
            index=0,
            timestamp=epoch_millis(self._clock.now()),
            payload=payload,
            prev_hash=self.parent_hash or GENESIS_PREV_HASH,
        )
        genesis.mine(self.difficulty)
        self._chain.append(genesis)
        logger.info("Created %s chain (genesis %s)", self.chain_type, genesis.hash[:16])
        return genesis

    @property
    def blocks(self) -> List[Block]:
        """Copy of the block list."""
        return list(self._chain)

    @property
    def length(self) -> int:
        return len(self._chain)

    @property
    def difficulty(self) -> int:
        return self._pow.difficulty

    @property
    def clock(self) -> Clock:
        return self._clock

    def __len__(self) -> int:
        return len(self._chain)

    def __iter__(self):
        return iter(self._chain)

    def __reversed__(self):
        return reversed(self._chain)

    def latest(self) -> Block:
        """
        Get the tip of the chain.

        Raises:
            EmptyChainError: If the chain has no blocks
        """
        if not self._chain:
            raise EmptyChainError(f"{self.chain_type} chain has no blocks")
        return self._chain[-1]

    def get_block(self, index: int) -> Optional[Block]:
        if 0 <= index < len(self._chain):
            return self._chain[index]
        return None

    def append(self, payload: Dict[str, Any]) -> Block:
        """
        Mine a new block carrying payload and link it to the tip.

        Returns:
            The newly appended block

        Raises:
            InvalidArgumentError: payload cannot be serialised; the chain is unchanged
        """
        tip = self.latest()
        try:
            block = Block.create(
                index=len(self._chain),
                timestamp=epoch_millis(self._clock.now()),
                payload=payload,
                prev_hash=tip.hash,
            )
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e
        block.mine(self.difficulty)
        self._chain.append(block)
        return block

    def validate(self) -> List[str]:
        """List every integrity problem in this chain."""
        return verify_blocks(self._chain, self.difficulty)

    def is_valid(self) -> bool:
        """
        Validate hash, proof-of-work and linkage of blocks 1..n-1.

        A genesis-only chain is valid; an empty chain is not.
        """
        problems = self.validate()
        for problem in problems:
            logger.warning("%s chain: %s", self.chain_type, problem)
        return not problems

    def validate_parent_reference(self, expected_parent_hash: str) -> bool:
        """True iff the genesis block's prev_hash equals expected_parent_hash."""
        if not self._chain:
            return False
        return self._chain[0].prev_hash == expected_parent_hash

    def contains_hash(self, block_hash: str) -> bool:
        """True if any block in this chain has the given hash."""
        return any(block.hash == block_hash for block in self._chain)

    def stats(self) -> Dict[str, Any]:
        return {
            'chainType': self.chain_type,
            'length': len(self._chain),
            'latestHash': self._chain[-1].hash if self._chain else None,
            'isValid': self.is_valid(),
            'difficulty': self.difficulty,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize chain metadata and blocks."""
        return {
            'chainType': self.chain_type,
            'parentHash': self.parent_hash,
            'difficulty': self.difficulty,
            'chain': [block.to_dict() for block in self._chain],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], clock: Optional[Clock] = None) -> 'Blockchain':
        """
        Restore a chain from a snapshot.

        Blocks are taken verbatim; nothing is re-mined or re-validated.
        """
        chain = cls(
            chain_type=data.get('chainType', GENERIC_CHAIN_TYPE),
            parent_hash=data.get('parentHash'),
            difficulty=data.get('difficulty', DEFAULT_DIFFICULTY),
            clock=clock,
        )
        chain._chain = [Block.from_dict(block_data) for block_data in data.get('chain', [])]
        return chain

    def print_chain(self) -> None:
        """Print the blockchain."""
        print(f"\n{self.chain_type} chain (difficulty={self.difficulty}, length={self.length})")
        print("=" * 60)
        for block in self._chain:
            print(block)
            print("-" * 40)


# ============================================================================
# Convenience Functions
# ============================================================================

def create_blockchain(
    chain_type: str = GENERIC_CHAIN_TYPE,
    parent_hash: Optional[str] = None,
    difficulty: int = DEFAULT_DIFFICULTY,
    clock: Optional[Clock] = None
) -> Blockchain:
    """Create a chain seeded with the standard genesis payload."""
    chain = Blockchain(chain_type, parent_hash, difficulty, clock)
    chain.initialize()
    return chain
