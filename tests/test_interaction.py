import itertools

import pytest

from exam_engine.services.interaction import identity_order, is_permutation, reorder


def test_identity_order():
    assert identity_order(4) == [0, 1, 2, 3]
    assert identity_order(0) == []


def test_reorder_moves_item_forward():
    assert reorder([0, 1, 2, 3], 0, 2) == [1, 2, 0, 3]


def test_reorder_moves_item_backward():
    assert reorder([0, 1, 2, 3], 3, 1) == [0, 3, 1, 2]


def test_reorder_does_not_mutate_input():
    order = [2, 0, 1]
    reorder(order, 0, 2)
    assert order == [2, 0, 1]


def test_reorder_always_yields_permutation():
    start = [3, 1, 4, 0, 2]
    for from_index, to_index in itertools.product(range(5), repeat=2):
        result = reorder(start, from_index, to_index)
        assert is_permutation(result, 5)
        assert result[to_index] == start[from_index]


@pytest.mark.parametrize("from_index, to_index", [(-1, 0), (0, 3), (3, 0)])
def test_reorder_out_of_range(from_index, to_index):
    with pytest.raises(IndexError):
        reorder([0, 1, 2], from_index, to_index)


def test_is_permutation_rejects_duplicates_and_gaps():
    assert is_permutation([1, 0, 2], 3)
    assert not is_permutation([0, 0, 2], 3)
    assert not is_permutation([0, 1, 3], 3)
