"""
dynvol Phase and Volume Descriptors

Plain containers passed between the grouper, the descriptor builder, the
assembler and the volume object.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import numpy as np


@dataclass(frozen=True)
class VolumeGeometry:
    """
    Geometry shared by every phase of a 4D series

    Attributes:
        dimensions: Voxel counts (columns, rows, slices)
        spacing: Voxel spacing (column, row, slice) in mm
        origin: Position of the first voxel of the first sorted slice
        direction: Row cosines, column cosines, slice normal (9 elements)
        size_in_bytes: Byte size of one phase's scalar buffer
    """
    dimensions: Tuple[int, int, int]
    spacing: Tuple[float, float, float]
    origin: Tuple[float, float, float]
    direction: Tuple[float, ...] = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)
    size_in_bytes: int = 0

    @property
    def num_voxels(self) -> int:
        cols, rows, slices = self.dimensions
        return cols * rows * slices


@dataclass
class PhaseInfo:
    """Description of one temporal phase"""
    geometry: VolumeGeometry
    metadata: Dict[str, Any]
    sorted_image_ids: List[str]
    scalar_data: np.ndarray

    @property
    def num_slices(self) -> int:
        return len(self.sorted_image_ids)


@dataclass
class VolumeDescriptor:
    """
    Canonical description of an assembled 4D volume

    Geometry and metadata come from phase 0. scalar_data holds one buffer
    per phase; image_ids is the flattened slice list across phases and
    phase_sizes the slice count of each phase. All three may have been
    reordered to promote a phase to slot 0. phase_sizes only matches the
    image_ids spans under the size_aware strategy or with equal-size phases.
    """
    volume_id: str
    geometry: VolumeGeometry
    metadata: Dict[str, Any]
    scalar_data: List[np.ndarray]
    image_ids: List[str]
    splitting_tag: Optional[str] = None
    phase_sizes: List[int] = field(default_factory=list)

    @property
    def num_time_points(self) -> int:
        return len(self.scalar_data)

    @property
    def dimensions(self) -> Tuple[int, int, int]:
        return self.geometry.dimensions

    @property
    def spacing(self) -> Tuple[float, float, float]:
        return self.geometry.spacing

    @property
    def origin(self) -> Tuple[float, float, float]:
        return self.geometry.origin

    @property
    def direction(self) -> Tuple[float, ...]:
        return self.geometry.direction

    @property
    def size_in_bytes(self) -> int:
        return self.geometry.size_in_bytes


@dataclass
class LoadStatus:
    """
    Streaming state of a volume

    Created empty at volume construction and mutated only by the volume
    object, under its lock.
    """
    loaded: bool = False
    loading: bool = False
    cancelled: bool = False
    cached_frames: Set[int] = field(default_factory=set)
    callbacks: List[Callable[[Any], None]] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
