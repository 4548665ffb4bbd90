"""
dynvol 4D Grouping

Partition a flat list of slice image ids into temporal phases.

Slices are first grouped by ImagePositionPatient. A candidate tag splits the
series when every slice carries it, values are distinct within each
position, and every position carries the same set of values. Phases are
then ordered by ascending tag value.
"""

from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..config.config_loader import DEFAULT_SPLIT_TAGS
from ..errors import GroupingFailure
from ..utils.logging_config import get_logger
from .metadata import MetadataProvider

logger = get_logger("grouping")

# Positions are compared after rounding to this many decimals
POSITION_DECIMALS = 3


def _read_records(
    image_ids: Sequence[str],
    metadata_provider: MetadataProvider,
) -> Dict[str, Mapping[str, Any]]:
    records = {}
    for image_id in image_ids:
        try:
            records[image_id] = metadata_provider(image_id)
        except Exception as e:
            raise GroupingFailure(f"Could not read metadata for {image_id}: {e}") from e
    return records


def _first_value(value: Any) -> Any:
    """Multi-valued DICOM attributes contribute their first element"""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _group_by_position(
    image_ids: Sequence[str],
    records: Mapping[str, Mapping[str, Any]],
) -> Optional[List[List[str]]]:
    """
    Group ids by slice position, keeping first-appearance order

    Returns None when a position is missing or groups differ in size.
    """
    groups: "OrderedDict[Tuple[float, ...], List[str]]" = OrderedDict()
    for image_id in image_ids:
        position = records[image_id].get("ImagePositionPatient")
        if position is None or len(position) != 3:
            return None
        key = tuple(round(float(v), POSITION_DECIMALS) for v in position)
        groups.setdefault(key, []).append(image_id)

    sizes = {len(group) for group in groups.values()}
    if len(sizes) != 1:
        logger.debug(f"Position groups have unequal sizes {sorted(sizes)}, not a 4D series")
        return None
    return list(groups.values())


def _split_by_tag(
    image_ids: Sequence[str],
    position_groups: List[List[str]],
    records: Mapping[str, Mapping[str, Any]],
    tag: str,
) -> Optional[List[List[str]]]:
    values = {}
    for image_id in image_ids:
        value = _first_value(records[image_id].get(tag))
        if value is None or value == "":
            return None
        try:
            values[image_id] = float(value)
        except (TypeError, ValueError):
            return None

    reference = None
    for group in position_groups:
        group_values = {values[image_id] for image_id in group}
        if len(group_values) != len(group):
            return None
        if reference is None:
            reference = group_values
        elif group_values != reference:
            return None

    if reference is None or len(reference) < 2:
        return None

    phases: "OrderedDict[float, List[str]]" = OrderedDict((v, []) for v in sorted(reference))
    for image_id in image_ids:
        phases[values[image_id]].append(image_id)
    return list(phases.values())


def split_image_ids_by_4d_tags(
    image_ids: Sequence[str],
    metadata_provider: MetadataProvider,
    split_tags: Optional[Sequence[str]] = None,
) -> Tuple[List[List[str]], Optional[str]]:
    """
    Split image ids into temporal phase groups

    Args:
        image_ids: Flat list of slice image ids
        metadata_provider: Callable returning the metadata of one image id
        split_tags: Candidate tags, tried in order (default DEFAULT_SPLIT_TAGS)

    Returns:
        (phase groups in ascending tag-value order, splitting tag). When no
        tag splits the series a single group and None are returned.

    Raises:
        GroupingFailure: If metadata cannot be read for an image id
    """
    image_ids = list(image_ids)
    split_tags = list(split_tags) if split_tags is not None else list(DEFAULT_SPLIT_TAGS)

    records = _read_records(image_ids, metadata_provider)
    position_groups = _group_by_position(image_ids, records)
    if position_groups is None:
        return [image_ids], None

    for tag in split_tags:
        groups = _split_by_tag(image_ids, position_groups, records, tag)
        if groups is not None:
            logger.debug(
                f"Split {len(image_ids)} slices into {len(groups)} phases by {tag} "
                f"({len(position_groups)} positions)"
            )
            return groups, tag

    logger.debug(f"No 4D tag splits {len(image_ids)} slices; tried {split_tags}")
    return [image_ids], None
