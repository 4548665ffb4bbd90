"""
dynvol Phase Promotion

Move a chosen phase into slot 0 of an assembled 4D volume: its scalar buffer
swaps places with phase 0's buffer, and its slice ids swap places with phase
0's slice ids in the flattened id list.

Two strategies are available:
- "uniform": swap a window of round(len(image_ids) / num_phases) ids starting
  at index * window. Correct only when every phase has the same slice count.
- "size_aware": swap the true id spans of phase 0 and the promoted phase.

For equal-size phases both give identical results.
"""

import math
from typing import List, Optional, Sequence, Tuple, TypeVar

from ..config.config_loader import REORDER_STRATEGIES
from ..errors import InvalidArgumentError
from ..utils.logging_config import get_logger

logger = get_logger("reorder")

T = TypeVar("T")


def should_promote(scalar_data_index: Optional[int], num_phases: int) -> bool:
    """Whether a promotion applies; out-of-range indexes mean no reorder"""
    return scalar_data_index is not None and 0 < scalar_data_index < num_phases


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _swap_uniform(image_ids: List[str], num_phases: int, scalar_data_index: int) -> None:
    group_size = _round_half_up(len(image_ids) / num_phases)
    offset = scalar_data_index * group_size
    # The window is clipped at the end of the list when phases are uneven
    for i in range(group_size):
        position = offset + i
        if position >= len(image_ids):
            break
        image_ids[position], image_ids[i] = image_ids[i], image_ids[position]


def _swap_spans(image_ids: List[str], phase_sizes: Sequence[int], scalar_data_index: int) -> List[str]:
    first_size = phase_sizes[0]
    start = sum(phase_sizes[:scalar_data_index])
    stop = start + phase_sizes[scalar_data_index]
    return (
        image_ids[start:stop]
        + image_ids[first_size:start]
        + image_ids[:first_size]
        + image_ids[stop:]
    )


def promote_phase(
    scalar_data: Sequence[T],
    image_ids: Sequence[str],
    phase_sizes: Sequence[int],
    scalar_data_index: Optional[int],
    strategy: str = "uniform",
) -> Tuple[List[T], List[str]]:
    """
    Promote phase `scalar_data_index` to slot 0

    Args:
        scalar_data: One buffer per phase, in phase order
        image_ids: Flattened slice ids, in phase order
        phase_sizes: Slice count of each phase
        scalar_data_index: Phase to promote; None, 0, negative or >= the
            phase count leaves both sequences unchanged
        strategy: "uniform" or "size_aware"

    Returns:
        New (scalar_data, image_ids) lists; inputs are not modified
    """
    scalar_data = list(scalar_data)
    image_ids = list(image_ids)
    num_phases = len(scalar_data)

    if strategy not in REORDER_STRATEGIES:
        raise InvalidArgumentError(f"Unknown reorder strategy: {strategy}")
    if len(phase_sizes) != num_phases:
        raise InvalidArgumentError(
            f"Got {len(phase_sizes)} phase sizes for {num_phases} scalar buffers"
        )
    if sum(phase_sizes) != len(image_ids):
        raise InvalidArgumentError(
            f"Phase sizes sum to {sum(phase_sizes)} but there are {len(image_ids)} image ids"
        )

    if not should_promote(scalar_data_index, num_phases):
        logger.debug(f"No phase promotion (index={scalar_data_index}, phases={num_phases})")
        return scalar_data, image_ids

    uneven = len(set(phase_sizes)) > 1
    if uneven and strategy == "uniform":
        logger.warning(
            f"Phases have unequal slice counts {list(phase_sizes)}; uniform promotion "
            "will misalign image ids (use reorder.strategy=size_aware)"
        )

    scalar_data[0], scalar_data[scalar_data_index] = scalar_data[scalar_data_index], scalar_data[0]

    if strategy == "uniform":
        _swap_uniform(image_ids, num_phases, scalar_data_index)
    else:
        image_ids = _swap_spans(image_ids, phase_sizes, scalar_data_index)

    logger.debug(f"Promoted phase {scalar_data_index} to slot 0 ({strategy})")
    return scalar_data, image_ids
