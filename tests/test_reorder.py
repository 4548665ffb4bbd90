"""Tests for promoting a phase to slot 0"""

import logging

import pytest

from dynvol.data.reorder import promote_phase, should_promote
from dynvol.errors import InvalidArgumentError

IDS = ["a1", "a2", "b1", "b2", "c1", "c2"]


def test_promote_third_phase_example():
    scalar_data, image_ids = promote_phase(["A", "B", "C"], IDS, [2, 2, 2], 2)

    assert scalar_data == ["C", "B", "A"]
    assert image_ids == ["c1", "c2", "b1", "b2", "a1", "a2"]


def test_promote_second_phase_example():
    scalar_data, image_ids = promote_phase(["A", "B", "C"], IDS, [2, 2, 2], 1)

    assert scalar_data == ["B", "A", "C"]
    assert image_ids == ["b1", "b2", "a1", "a2", "c1", "c2"]


@pytest.mark.parametrize("index", [None, 0, -1, -5, 3, 10])
def test_out_of_range_index_is_noop(index):
    scalar_data, image_ids = promote_phase(["A", "B", "C"], IDS, [2, 2, 2], index)

    assert scalar_data == ["A", "B", "C"]
    assert image_ids == IDS


@pytest.mark.parametrize("num_phases,group_size", [(2, 1), (4, 3), (5, 7)])
def test_equal_phases_swap_only_first_and_promoted_spans(num_phases, group_size):
    ids = [f"{p}:{s}" for p in range(num_phases) for s in range(group_size)]
    buffers = [object() for _ in range(num_phases)]

    for j in range(1, num_phases):
        scalar_data, image_ids = promote_phase(buffers, ids, [group_size] * num_phases, j)

        assert scalar_data[0] is buffers[j]
        assert scalar_data[j] is buffers[0]
        assert image_ids[:group_size] == ids[j * group_size:(j + 1) * group_size]
        assert image_ids[j * group_size:(j + 1) * group_size] == ids[:group_size]
        for p in range(1, num_phases):
            if p != j:
                span = slice(p * group_size, (p + 1) * group_size)
                assert image_ids[span] == ids[span]
                assert scalar_data[p] is buffers[p]


def test_strategies_agree_for_equal_phases():
    uniform = promote_phase(["A", "B", "C"], IDS, [2, 2, 2], 2, strategy="uniform")
    size_aware = promote_phase(["A", "B", "C"], IDS, [2, 2, 2], 2, strategy="size_aware")

    assert uniform == size_aware


def test_inputs_are_not_modified():
    buffers = ["A", "B", "C"]
    ids = list(IDS)

    promote_phase(buffers, ids, [2, 2, 2], 2)

    assert buffers == ["A", "B", "C"]
    assert ids == IDS


def test_uniform_with_unequal_phases_keeps_window_behaviour(caplog):
    # 5 ids over 2 phases: window of round(2.5) = 3 starting at 3, clipped at the end
    ids = ["a1", "a2", "a3", "b1", "b2"]

    with caplog.at_level(logging.WARNING, logger="dynvol.reorder"):
        scalar_data, image_ids = promote_phase(["A", "B"], ids, [3, 2], 1)

    assert scalar_data == ["B", "A"]
    assert image_ids == ["b1", "b2", "a3", "a1", "a2"]
    assert sorted(image_ids) == sorted(ids)
    assert "unequal slice counts" in caplog.text


def test_size_aware_with_unequal_phases_moves_true_spans():
    ids = ["a1", "a2", "a3", "b1", "c1", "c2"]

    scalar_data, image_ids = promote_phase(["A", "B", "C"], ids, [3, 1, 2], 2, strategy="size_aware")

    assert scalar_data == ["C", "B", "A"]
    assert image_ids == ["c1", "c2", "b1", "a1", "a2", "a3"]


def test_unknown_strategy_rejected():
    with pytest.raises(InvalidArgumentError):
        promote_phase(["A", "B"], ["a", "b"], [1, 1], 1, strategy="sideways")


def test_inconsistent_phase_sizes_rejected():
    with pytest.raises(InvalidArgumentError):
        promote_phase(["A", "B"], ["a", "b", "c"], [1, 1], 1)

    with pytest.raises(InvalidArgumentError):
        promote_phase(["A", "B"], ["a", "b"], [2], 1)


def test_should_promote():
    assert should_promote(1, 2)
    assert not should_promote(2, 2)
    assert not should_promote(0, 2)
    assert not should_promote(-1, 2)
    assert not should_promote(None, 2)
