"""
dynvol Streaming Dynamic Volume Loader

Assemble a 4D volume from a flat list of slice image ids:

1. Validate the request
2. Split the ids into temporal phases (grouper)
3. Describe each phase (descriptor builder)
4. Flatten phase ids and collect phase buffers in phase order
5. Optionally promote one phase to slot 0
6. Build the VolumeDescriptor and construct the volume
7. Return a VolumeLoadHandle

Assembly is synchronous and performs no IO of its own. Errors raised by the
grouper or descriptor builder propagate unchanged.
"""

from functools import partial
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from .config.config_loader import LoaderConfig, default_config
from .data.grouping import split_image_ids_by_4d_tags
from .data.metadata import MetadataProvider
from .data.phase_info import LoadStatus, PhaseInfo, VolumeDescriptor
from .data.reorder import promote_phase, should_promote
from .data.volume_info import get_volume_info
from .errors import GroupingFailure, InvalidArgumentError
from .handle import VolumeLoadHandle
from .utils.logging_config import get_logger, Timer
from .volume import StreamingDynamicImageVolume, VolumeFactory

logger = get_logger("loader")

Grouper = Callable[[Sequence[str]], Tuple[List[List[str]], Optional[str]]]
Describer = Callable[[Sequence[str]], PhaseInfo]


class DynamicVolumeLoader:
    """
    Assembles 4D volumes from slice image ids

    Args:
        grouper: Splits ids into (phase groups, splitting tag)
        describer: Builds the PhaseInfo of one phase group
        volume_factory: Builds the volume from (descriptor, load status)
        config: Loader configuration (default: package defaults)
    """

    def __init__(
        self,
        grouper: Grouper,
        describer: Describer,
        volume_factory: VolumeFactory = StreamingDynamicImageVolume,
        config: Optional[LoaderConfig] = None,
    ):
        self.grouper = grouper
        self.describer = describer
        self.volume_factory = volume_factory
        self.config = config or default_config()

    @classmethod
    def from_metadata_provider(
        cls,
        metadata_provider: MetadataProvider,
        config: Optional[LoaderConfig] = None,
        volume_factory: VolumeFactory = StreamingDynamicImageVolume,
    ) -> "DynamicVolumeLoader":
        """Loader using the built-in grouper and descriptor builder"""
        config = config or default_config()
        return cls(
            grouper=partial(
                split_image_ids_by_4d_tags,
                metadata_provider=metadata_provider,
                split_tags=config.grouping.split_tags,
            ),
            describer=partial(get_volume_info, metadata_provider=metadata_provider),
            volume_factory=volume_factory,
            config=config,
        )

    def get_4d_volume_info(self, image_ids: Sequence[str]) -> Tuple[List[PhaseInfo], Optional[str]]:
        """Group ids into phases and describe each phase, in phase order"""
        groups, splitting_tag = self.grouper(image_ids)
        if not groups:
            raise GroupingFailure("Grouper returned no phase groups")
        return [self.describer(group) for group in groups], splitting_tag

    def assemble(
        self,
        volume_id: str,
        image_ids: Sequence[str],
        scalar_data_index: Optional[int] = None,
    ) -> VolumeDescriptor:
        """
        Build the VolumeDescriptor for a 4D series

        Args:
            volume_id: Id of the volume to create
            image_ids: Flat list of slice image ids (non-empty)
            scalar_data_index: Phase to promote to slot 0; out-of-range
                values leave phase order unchanged

        Returns:
            VolumeDescriptor with phase 0 geometry and flattened ids
        """
        if image_ids is None or len(image_ids) == 0:
            raise InvalidArgumentError(
                "image_ids must be provided to create a 4D streaming image volume"
            )

        with Timer(f"Assemble {volume_id}", logger):
            phases, splitting_tag = self.get_4d_volume_info(image_ids)
            canonical = phases[0]

            image_ids_flat = [image_id for phase in phases for image_id in phase.sorted_image_ids]
            scalar_data = [phase.scalar_data for phase in phases]
            phase_sizes = [phase.num_slices for phase in phases]

            scalar_data, image_ids_flat = promote_phase(
                scalar_data,
                image_ids_flat,
                phase_sizes,
                scalar_data_index,
                strategy=self.config.reorder.strategy,
            )
            if should_promote(scalar_data_index, len(phase_sizes)):
                phase_sizes[0], phase_sizes[scalar_data_index] = phase_sizes[scalar_data_index], phase_sizes[0]

        logger.info(
            f"Assembled {volume_id}: {len(phases)} phases, {len(image_ids_flat)} slices, "
            f"split by {splitting_tag or 'nothing'}"
        )

        return VolumeDescriptor(
            volume_id=volume_id,
            geometry=canonical.geometry,
            metadata=canonical.metadata,
            scalar_data=scalar_data,
            image_ids=image_ids_flat,
            splitting_tag=splitting_tag,
            phase_sizes=phase_sizes,
        )

    def load(self, volume_id: str, options: Optional[Mapping[str, Any]]) -> VolumeLoadHandle:
        """
        Create a streaming 4D volume and its control handle

        Args:
            volume_id: Id of the volume to create
            options: {"image_ids": [...], "scalar_data_index": Optional[int]}

        Returns:
            VolumeLoadHandle whose promise is already resolved to the volume

        Raises:
            InvalidArgumentError: If options or image_ids are missing or empty
        """
        if not options:
            raise InvalidArgumentError(
                "image_ids must be provided to create a 4D streaming image volume"
            )

        scalar_data_index = options.get(
            "scalar_data_index", self.config.reorder.default_scalar_data_index
        )
        descriptor = self.assemble(volume_id, options.get("image_ids"), scalar_data_index)
        volume = self.volume_factory(descriptor, LoadStatus())
        return VolumeLoadHandle(volume)


def streaming_dynamic_image_volume_loader(
    volume_id: str,
    options: Optional[Mapping[str, Any]],
    metadata_provider: MetadataProvider,
    config: Optional[LoaderConfig] = None,
    volume_factory: VolumeFactory = StreamingDynamicImageVolume,
) -> VolumeLoadHandle:
    """
    Load a streaming 4D volume using the built-in grouper and descriptor builder

    Example:
        handle = streaming_dynamic_image_volume_loader(
            "dynamic:ct-perfusion",
            {"image_ids": image_ids, "scalar_data_index": 2},
            metadata_provider=provider,
        )
        volume = handle.promise.result()
    """
    loader = DynamicVolumeLoader.from_metadata_provider(
        metadata_provider, config=config, volume_factory=volume_factory
    )
    return loader.load(volume_id, options)
