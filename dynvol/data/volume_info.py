"""
dynvol Phase Descriptor Builder

Derive the geometry, metadata and an empty scalar buffer for one phase of a
4D series from its slices' metadata. Slices are sorted along the slice
normal (cross product of the row and column cosines), so the origin is the
position of the slice with the smallest projection onto the normal.
"""

from typing import Any, Dict, List, Mapping, Sequence

import numpy as np

from ..errors import DescriptionFailure
from ..utils.logging_config import get_logger
from .metadata import MetadataProvider
from .phase_info import PhaseInfo, VolumeGeometry

logger = get_logger("volume_info")

REQUIRED_ATTRIBUTES = (
    "Rows",
    "Columns",
    "ImageOrientationPatient",
    "ImagePositionPatient",
    "PixelSpacing",
    "BitsAllocated",
)

# Attributes carried over into the phase metadata record
METADATA_ATTRIBUTES = (
    "BitsAllocated",
    "BitsStored",
    "HighBit",
    "SamplesPerPixel",
    "PixelRepresentation",
    "PhotometricInterpretation",
    "RescaleSlope",
    "RescaleIntercept",
    "WindowCenter",
    "WindowWidth",
    "Modality",
    "SeriesInstanceUID",
    "StudyInstanceUID",
    "FrameOfReferenceUID",
    "ImageOrientationPatient",
    "PixelSpacing",
    "Rows",
    "Columns",
)

ORIENTATION_TOLERANCE = 1e-4


def _scalar_dtype(record: Mapping[str, Any]) -> np.dtype:
    """
    Pick the buffer dtype able to hold rescaled pixel values

    Raises:
        DescriptionFailure: For unsupported BitsAllocated
    """
    bits = int(record["BitsAllocated"])
    signed = int(record.get("PixelRepresentation", 0) or 0) == 1
    slope = float(record.get("RescaleSlope", 1) or 1)
    intercept = float(record.get("RescaleIntercept", 0) or 0)

    if bits == 32 or not slope.is_integer() or not intercept.is_integer():
        return np.dtype(np.float32)
    if bits == 8:
        return np.dtype(np.int8 if signed else np.uint8)
    if bits == 16:
        return np.dtype(np.int16 if signed or intercept < 0 else np.uint16)

    raise DescriptionFailure(f"Unsupported BitsAllocated: {bits}")


def _slice_spacing(sorted_distances: np.ndarray, record: Mapping[str, Any]) -> float:
    if len(sorted_distances) > 1:
        step = float(np.mean(np.diff(sorted_distances)))
        if step > 0:
            return step

    for key in ("SpacingBetweenSlices", "SliceThickness"):
        value = record.get(key)
        if value:
            return float(value)
    return 1.0


def get_volume_info(
    image_ids: Sequence[str],
    metadata_provider: MetadataProvider,
) -> PhaseInfo:
    """
    Build the PhaseInfo for one phase

    Args:
        image_ids: Image ids of one phase, in any order
        metadata_provider: Callable returning the metadata of one image id

    Returns:
        PhaseInfo with sorted ids, geometry, metadata and a zeroed buffer

    Raises:
        DescriptionFailure: On missing attributes or inconsistent geometry
    """
    image_ids = list(image_ids)
    if not image_ids:
        raise DescriptionFailure("Cannot describe a phase without image ids")

    records: List[Mapping[str, Any]] = []
    for image_id in image_ids:
        try:
            record = metadata_provider(image_id)
        except Exception as e:
            raise DescriptionFailure(f"Could not read metadata for {image_id}: {e}") from e
        missing = [key for key in REQUIRED_ATTRIBUTES if record.get(key) is None]
        if missing:
            raise DescriptionFailure(f"{image_id} is missing required attributes: {missing}")
        records.append(record)

    first = records[0]
    rows, columns = int(first["Rows"]), int(first["Columns"])
    orientation = np.asarray(first["ImageOrientationPatient"], dtype=float)
    if orientation.shape != (6,):
        raise DescriptionFailure(f"ImageOrientationPatient must have 6 values, got {orientation.tolist()}")

    for image_id, record in zip(image_ids[1:], records[1:]):
        if int(record["Rows"]) != rows or int(record["Columns"]) != columns:
            raise DescriptionFailure(
                f"{image_id} has size {record['Columns']}x{record['Rows']}, expected {columns}x{rows}"
            )
        other = np.asarray(record["ImageOrientationPatient"], dtype=float)
        if other.shape != (6,) or not np.allclose(other, orientation, atol=ORIENTATION_TOLERANCE):
            raise DescriptionFailure(f"{image_id} orientation differs from {image_ids[0]}")

    row_cosines = orientation[:3]
    column_cosines = orientation[3:]
    normal = np.cross(row_cosines, column_cosines)

    positions = np.asarray([r["ImagePositionPatient"] for r in records], dtype=float)
    if positions.shape != (len(image_ids), 3):
        raise DescriptionFailure("ImagePositionPatient must have 3 values per slice")

    distances = positions @ normal
    order = np.argsort(distances, kind="stable")
    sorted_image_ids = [image_ids[i] for i in order]

    row_spacing, column_spacing = (float(v) for v in first["PixelSpacing"][:2])
    spacing = (column_spacing, row_spacing, _slice_spacing(distances[order], first))

    dtype = _scalar_dtype(first)
    scalar_data = np.zeros(columns * rows * len(image_ids), dtype=dtype)

    geometry = VolumeGeometry(
        dimensions=(columns, rows, len(image_ids)),
        spacing=spacing,
        origin=tuple(float(v) for v in positions[order[0]]),
        direction=tuple(float(v) for v in np.concatenate([row_cosines, column_cosines, normal])),
        size_in_bytes=int(scalar_data.nbytes),
    )
    metadata: Dict[str, Any] = {key: first[key] for key in METADATA_ATTRIBUTES if key in first}

    logger.debug(
        f"Phase of {len(image_ids)} slices: dims={geometry.dimensions}, "
        f"spacing={tuple(round(s, 3) for s in spacing)}, dtype={dtype}"
    )

    return PhaseInfo(
        geometry=geometry,
        metadata=metadata,
        sorted_image_ids=sorted_image_ids,
        scalar_data=scalar_data,
    )
