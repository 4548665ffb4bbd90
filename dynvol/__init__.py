"""
dynvol - 4D streaming volume assembly

Assembles a time-resolved (4D) volume from a flat list of 2D slice image
ids: slices are grouped into temporal phases, each phase is described
(geometry, metadata, scalar buffer), one phase may be promoted to slot 0,
and a streaming volume is constructed behind a cancel/decache handle.
Pixel decoding and transport are left to the streaming code that fills the
buffers.
"""

__version__ = "1.0.0"

from .config import load_config, default_config, LoaderConfig
from .data import (
    InMemoryMetadataProvider,
    VolumeGeometry,
    PhaseInfo,
    VolumeDescriptor,
    LoadStatus,
    split_image_ids_by_4d_tags,
    get_volume_info,
    promote_phase,
)
from .errors import (
    DynVolError,
    InvalidArgumentError,
    GroupingFailure,
    DescriptionFailure,
    VolumeDestroyedError,
    ConfigError,
)
from .handle import VolumeLoadHandle, OwnedSlot
from .loader import DynamicVolumeLoader, streaming_dynamic_image_volume_loader
from .volume import StreamingVolume, StreamingDynamicImageVolume

__all__ = [
    # Configuration
    "load_config",
    "default_config",
    "LoaderConfig",
    # Data
    "InMemoryMetadataProvider",
    "VolumeGeometry",
    "PhaseInfo",
    "VolumeDescriptor",
    "LoadStatus",
    "split_image_ids_by_4d_tags",
    "get_volume_info",
    "promote_phase",
    # Errors
    "DynVolError",
    "InvalidArgumentError",
    "GroupingFailure",
    "DescriptionFailure",
    "VolumeDestroyedError",
    "ConfigError",
    # Loading
    "DynamicVolumeLoader",
    "streaming_dynamic_image_volume_loader",
    "VolumeLoadHandle",
    "OwnedSlot",
    "StreamingVolume",
    "StreamingDynamicImageVolume",
]
