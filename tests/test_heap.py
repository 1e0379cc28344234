# tests/test_heap.py
"""
Tests for the segmented heap: allocation, access checks, freeing and
stale-key detection.
"""

import pytest

from brili import errors
from brili.heap import Heap, Key
from brili.types import PrimitiveType
from brili.values import Bool, Int


class TestAlloc:

    def test_alloc_returns_base_pointer(self, heap):
        p = heap.alloc(PrimitiveType.INT, 3)
        assert p.key.offset == 0
        assert p.element_type is PrimitiveType.INT
        assert heap.live_count == 1
        assert not heap.is_empty()

    @pytest.mark.parametrize("count", [0, -1, -100])
    def test_non_positive_count(self, heap, count):
        with pytest.raises(errors.InvalidAllocationError) as info:
            heap.alloc(PrimitiveType.INT, count)
        assert info.value.category is errors.ErrorCategory.MEMORY
        assert heap.is_empty()

    def test_distinct_blocks(self, heap):
        a = heap.alloc(PrimitiveType.INT, 1)
        b = heap.alloc(PrimitiveType.INT, 1)
        assert a.key.block != b.key.block
        assert len(heap) == 2
        assert heap.alloc_count == 2

    def test_huge_block(self, heap):
        p = heap.alloc(PrimitiveType.INT, 10**19)
        last = p.key.add(10**19 - 1)
        heap.write(last, Int(9))
        assert heap.read(last) == Int(9)
        with pytest.raises(errors.InvalidAccessError):
            heap.read(p.key.add(10**19))
        heap.free(p.key)
        assert heap.is_empty()

    def test_slots_start_uninitialized(self, heap):
        p = heap.alloc(PrimitiveType.BOOL, 2)
        with pytest.raises(errors.UninitializedReadError):
            heap.read(p.key.add(1))


class TestReadWrite:

    def test_round_trip(self, heap):
        p = heap.alloc(PrimitiveType.INT, 3)
        heap.write(p.key.add(2), Int(42))
        assert heap.read(p.key.add(2)) == Int(42)

    def test_overwrite(self, heap):
        p = heap.alloc(PrimitiveType.INT, 1)
        heap.write(p.key, Int(1))
        heap.write(p.key, Int(2))
        assert heap.read(p.key) == Int(2)

    def test_no_type_check_at_heap_layer(self, heap):
        p = heap.alloc(PrimitiveType.INT, 1)
        heap.write(p.key, Bool(True))
        assert heap.read(p.key) == Bool(True)

    @pytest.mark.parametrize("offset", [3, 4, -1, 100])
    def test_out_of_bounds(self, heap, offset):
        p = heap.alloc(PrimitiveType.INT, 3)
        with pytest.raises(errors.InvalidAccessError):
            heap.read(p.key.add(offset))
        with pytest.raises(errors.InvalidAccessError):
            heap.write(p.key.add(offset), Int(0))

    def test_never_allocated(self, heap):
        with pytest.raises(errors.InvalidAccessError):
            heap.read(Key(7, 0, 0))


class TestFree:

    def test_alloc_free_leaves_heap_empty(self, heap):
        p = heap.alloc(PrimitiveType.INT, 4)
        heap.free(p.key)
        assert heap.is_empty()
        assert heap.free_count == 1

    def test_use_after_free(self, heap):
        p = heap.alloc(PrimitiveType.INT, 1)
        heap.write(p.key, Int(5))
        heap.free(p.key)
        with pytest.raises(errors.InvalidAccessError):
            heap.read(p.key)

    def test_double_free(self, heap):
        p = heap.alloc(PrimitiveType.INT, 1)
        heap.free(p.key)
        with pytest.raises(errors.InvalidFreeError):
            heap.free(p.key)

    def test_interior_pointer_free(self, heap):
        p = heap.alloc(PrimitiveType.INT, 2)
        with pytest.raises(errors.InvalidFreeError):
            heap.free(p.key.add(1))
        assert heap.live_count == 1

    def test_free_never_allocated(self, heap):
        with pytest.raises(errors.InvalidFreeError):
            heap.free(Key(0, 0, 0))


class TestRecycling:

    def test_ids_are_recycled_with_new_generation(self, heap):
        old = heap.alloc(PrimitiveType.INT, 1)
        heap.free(old.key)
        new = heap.alloc(PrimitiveType.INT, 1)
        assert new.key.block == old.key.block
        assert new.key.generation == old.key.generation + 1

    def test_stale_key_rejected_after_recycling(self, heap):
        old = heap.alloc(PrimitiveType.INT, 1)
        heap.free(old.key)
        new = heap.alloc(PrimitiveType.INT, 1)
        heap.write(new.key, Int(9))
        with pytest.raises(errors.InvalidAccessError):
            heap.read(old.key)
        with pytest.raises(errors.InvalidFreeError):
            heap.free(old.key)
        assert heap.read(new.key) == Int(9)

    def test_stale_derived_key_rejected(self, heap):
        old = heap.alloc(PrimitiveType.INT, 4)
        interior = old.key.add(2)
        heap.free(old.key)
        heap.alloc(PrimitiveType.INT, 4)
        with pytest.raises(errors.InvalidAccessError):
            heap.read(interior)

    def test_no_recycling(self):
        heap = Heap(recycle_ids=False)
        old = heap.alloc(PrimitiveType.INT, 1)
        heap.free(old.key)
        new = heap.alloc(PrimitiveType.INT, 1)
        assert new.key.block != old.key.block


class TestInspection:

    def test_live_blocks(self, heap):
        heap.alloc(PrimitiveType.INT, 2)
        b = heap.alloc(PrimitiveType.BOOL, 5)
        sizes = sorted(block.size for block in heap.live_blocks())
        assert sizes == [2, 5]
        heap.free(b.key)
        assert [block.size for block in heap.live_blocks()] == [2]

    def test_repr(self, heap):
        heap.alloc(PrimitiveType.INT, 1)
        assert repr(heap) == "Heap(live=1, allocs=1, frees=0)"
