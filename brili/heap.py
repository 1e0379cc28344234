"""
brili/heap.py
=============

Segmented heap with fat-pointer keys.

The heap is an arena of blocks.  Each ``alloc`` creates one block of fixed
length; each ``free`` destroys exactly one.  A ``Key`` addresses one slot as
``(block id, generation, offset)``:

    ┌─────────────┐   Key(3, g=1, +2)   ┌───┬───┬───┬───┐
    │  Pointer    │ ──────────────────► │ 7 │ · │ ■ │ · │   block 3, gen 1
    │  elem=int   │                     └───┴───┴───┴───┘
    └─────────────┘                       0   1   2   3

Block identifiers are recycled once freed; the generation counter of an id
is bumped on every reuse, so a key held from an earlier life of the same id
no longer matches and is rejected as a use-after-free instead of aliasing
the new block.

A block records its length and only the slots written so far, so the
cost of ``alloc`` does not depend on the requested count.

Pointer arithmetic (``Key.add``) is never validated.  Liveness and bounds are
checked on ``read``, ``write`` and ``free`` only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from brili import errors
from brili.types import PrimitiveType
from brili.values import Pointer, Value

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Key:
    """Opaque heap address."""

    block: int
    generation: int
    offset: int = 0

    def add(self, n: int) -> "Key":
        return Key(self.block, self.generation, self.offset + n)

    def __str__(self) -> str:
        if self.offset:
            return f"{self.block}.{self.generation}+{self.offset}"
        return f"{self.block}.{self.generation}"


@dataclass
class Block:
    """One live allocation."""

    block_id: int
    generation: int
    element_type: PrimitiveType
    size: int
    slots: Dict[int, Value] = field(default_factory=dict)


class Heap:
    """
    Owner of all dynamically allocated memory and sole judge of pointer
    validity.

    ``recycle_ids`` controls whether freed block ids are handed out again.
    Either way stale keys are detected: with recycling through the
    generation counter, without it because ids are never reissued.
    """

    def __init__(self, recycle_ids: bool = True) -> None:
        self._blocks: Dict[int, Block] = {}
        self._generations: Dict[int, int] = {}
        self._free_ids: List[int] = []
        self._next_id: int = 0
        self._recycle_ids = recycle_ids
        self.alloc_count: int = 0
        self.free_count: int = 0

    # -- Allocation ------------------------------------------------------
    def alloc(self, element_type: PrimitiveType, count: int) -> Pointer:
        """Create a block of *count* uninitialized slots."""
        if count <= 0:
            raise errors.InvalidAllocationError(count)

        block_id = self._take_id()
        generation = self._generations.get(block_id, 0)
        self._blocks[block_id] = Block(
            block_id=block_id,
            generation=generation,
            element_type=element_type,
            size=count,
        )
        self.alloc_count += 1
        logger.debug("alloc block %d.%d: %d x %s", block_id, generation, count, element_type)
        return Pointer(Key(block_id, generation, 0), element_type)

    def free(self, key: Key) -> None:
        """Release the block *key* is the base of."""
        block = self._blocks.get(key.block)
        if block is None or block.generation != key.generation:
            raise errors.InvalidFreeError(
                f"free of pointer {key} that does not refer to a live allocation"
            )
        if key.offset != 0:
            raise errors.InvalidFreeError(
                f"free of interior pointer {key}; only the base pointer of an "
                f"allocation can be freed"
            )

        del self._blocks[key.block]
        self._generations[key.block] = block.generation + 1
        if self._recycle_ids:
            self._free_ids.append(key.block)
        self.free_count += 1
        logger.debug("free block %d.%d (%d slots)", key.block, block.generation, block.size)

    # -- Access ----------------------------------------------------------
    def read(self, key: Key) -> Value:
        block = self._checked_block(key)
        value = block.slots.get(key.offset)
        if value is None:
            raise errors.UninitializedReadError(
                f"pointer {key} points to uninitialized data"
            )
        return value

    def write(self, key: Key, value: Value) -> None:
        """Overwrite one slot.  No type check happens at this layer."""
        block = self._checked_block(key)
        block.slots[key.offset] = value

    # -- Inspection ------------------------------------------------------
    def is_empty(self) -> bool:
        return not self._blocks

    @property
    def live_count(self) -> int:
        return len(self._blocks)

    def live_blocks(self) -> Iterator[Block]:
        return iter(list(self._blocks.values()))

    def __len__(self) -> int:
        return len(self._blocks)

    def __repr__(self) -> str:
        return f"Heap(live={len(self._blocks)}, allocs={self.alloc_count}, frees={self.free_count})"

    # -- Internals -------------------------------------------------------
    def _take_id(self) -> int:
        if self._free_ids:
            return self._free_ids.pop()
        block_id = self._next_id
        self._next_id += 1
        return block_id

    def _checked_block(self, key: Key) -> Block:
        block = self._blocks.get(key.block)
        if block is None or block.generation != key.generation:
            raise errors.InvalidAccessError(
                f"access through pointer {key} to memory that is not allocated "
                f"(never allocated or already freed)"
            )
        if key.offset < 0 or key.offset >= block.size:
            raise errors.InvalidAccessError(
                f"pointer {key} out of bounds: offset {key.offset} not in "
                f"[0, {block.size})"
            )
        return block


__all__ = ["Key", "Block", "Heap"]
