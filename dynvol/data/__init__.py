"""dynvol Data Module - phase descriptors, 4D grouping and phase promotion"""

from .metadata import MetadataProvider, InMemoryMetadataProvider
from .phase_info import VolumeGeometry, PhaseInfo, VolumeDescriptor, LoadStatus
from .grouping import split_image_ids_by_4d_tags
from .volume_info import get_volume_info
from .reorder import promote_phase, should_promote

__all__ = [
    "MetadataProvider",
    "InMemoryMetadataProvider",
    "VolumeGeometry",
    "PhaseInfo",
    "VolumeDescriptor",
    "LoadStatus",
    "split_image_ids_by_4d_tags",
    "get_volume_info",
    "promote_phase",
    "should_promote",
]
