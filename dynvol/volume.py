"""
dynvol Streaming Volumes

The assembler hands its descriptor to a volume factory and only relies on
the StreamingVolume capabilities (cancel_loading, destroy). The default
StreamingDynamicImageVolume tracks which frames have been streamed in by an
external loader, exposes the active time point, and can export a phase as
a SimpleITK image.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import SimpleITK as sitk

from .data.phase_info import LoadStatus, VolumeDescriptor
from .errors import InvalidArgumentError, VolumeDestroyedError
from .utils.logging_config import get_logger

logger = get_logger("volume")

VolumeFactory = Callable[[VolumeDescriptor, LoadStatus], "StreamingVolume"]


class StreamingVolume(ABC):
    """Capabilities the loader handle needs from a volume"""

    @abstractmethod
    def cancel_loading(self) -> None:
        """Stop any in-flight streaming; must be idempotent"""

    @abstractmethod
    def destroy(self) -> None:
        """Release the volume's buffers; must be idempotent"""


class StreamingDynamicImageVolume(StreamingVolume):
    """
    4D volume whose per-phase buffers are filled by an external streamer

    Frames are indexed by their position in descriptor.image_ids. Streaming
    code reports each decoded frame through mark_frame_cached(); once every
    frame is cached the load callbacks fire once.
    """

    def __init__(self, descriptor: VolumeDescriptor, load_status: LoadStatus):
        self.descriptor = descriptor
        self.load_status = load_status
        self._scalar_data: Optional[List[np.ndarray]] = list(descriptor.scalar_data)
        self._time_point_index = 0
        self._time_point_listeners: List[Callable[[int], None]] = []

    @property
    def volume_id(self) -> str:
        return self.descriptor.volume_id

    @property
    def image_ids(self) -> List[str]:
        return self.descriptor.image_ids

    @property
    def num_time_points(self) -> int:
        return self.descriptor.num_time_points

    @property
    def num_frames(self) -> int:
        return len(self.descriptor.image_ids)

    @property
    def is_destroyed(self) -> bool:
        return self._scalar_data is None

    # Time points

    @property
    def time_point_index(self) -> int:
        return self._time_point_index

    @time_point_index.setter
    def time_point_index(self, index: int):
        if index < 0 or index >= self.num_time_points:
            raise InvalidArgumentError(
                f"Time point {index} out of range [0, {self.num_time_points})"
            )
        if index == self._time_point_index:
            return

        self._time_point_index = index
        logger.debug(f"{self.volume_id}: active time point -> {index}")
        for listener in list(self._time_point_listeners):
            listener(index)

    def add_time_point_listener(self, listener: Callable[[int], None]) -> None:
        self._time_point_listeners.append(listener)

    def get_scalar_data(self, time_point: Optional[int] = None) -> np.ndarray:
        """Scalar buffer of a time point (default: the active one)"""
        if self._scalar_data is None:
            raise VolumeDestroyedError(f"Volume {self.volume_id} has been destroyed")
        if time_point is None:
            time_point = self._time_point_index
        if time_point < 0 or time_point >= len(self._scalar_data):
            raise InvalidArgumentError(
                f"Time point {time_point} out of range [0, {len(self._scalar_data)})"
            )
        return self._scalar_data[time_point]

    def get_image_ids_for_time_point(self, time_point: int) -> List[str]:
        sizes = self.descriptor.phase_sizes
        if time_point < 0 or time_point >= len(sizes):
            raise InvalidArgumentError(f"Time point {time_point} out of range [0, {len(sizes)})")
        start = sum(sizes[:time_point])
        return self.descriptor.image_ids[start:start + sizes[time_point]]

    # Load status

    def add_load_callback(self, callback: Callable[[Any], None]) -> None:
        """Register a completion callback; runs immediately if already loaded"""
        with self.load_status.lock:
            if not self.load_status.loaded:
                self.load_status.callbacks.append(callback)
                return
        callback(self)

    def mark_frame_cached(self, frame_index: int) -> bool:
        """
        Record that a frame's pixels have been written into its buffer

        Returns:
            False if the frame was ignored because loading was cancelled or
            the volume destroyed, True otherwise
        """
        if frame_index < 0 or frame_index >= self.num_frames:
            raise InvalidArgumentError(f"Frame {frame_index} out of range [0, {self.num_frames})")

        status = self.load_status
        with status.lock:
            if status.cancelled or self.is_destroyed:
                return False
            status.cached_frames.add(frame_index)
            if status.loaded:
                return True
            if len(status.cached_frames) < self.num_frames:
                status.loading = True
                return True
            status.loaded = True
            status.loading = False
            callbacks = list(status.callbacks)
            status.callbacks.clear()

        logger.info(f"{self.volume_id}: all {self.num_frames} frames cached")
        for callback in callbacks:
            callback(self)
        return True

    def cancel_loading(self) -> None:
        status = self.load_status
        with status.lock:
            if status.cancelled:
                return
            status.cancelled = True
            status.loading = False
            status.callbacks.clear()
        logger.info(f"{self.volume_id}: loading cancelled ({len(status.cached_frames)}/{self.num_frames} frames cached)")

    def destroy(self) -> None:
        with self.load_status.lock:
            if self._scalar_data is None:
                return
            self._scalar_data = None
            self.descriptor.scalar_data = []
            self.load_status.callbacks.clear()
        self._time_point_listeners.clear()
        logger.info(f"{self.volume_id}: destroyed")

    # Export

    def to_sitk_image(self, time_point: Optional[int] = None) -> sitk.Image:
        """
        Export one phase as a SimpleITK image

        The buffer is laid out slice-major (slices, rows, columns); the
        descriptor direction holds the axis vectors, which become the
        columns of the SimpleITK direction matrix.
        """
        columns, rows, slices = self.descriptor.dimensions
        array = self.get_scalar_data(time_point).reshape(slices, rows, columns)

        image = sitk.GetImageFromArray(array)
        image.SetSpacing(tuple(float(s) for s in self.descriptor.spacing))
        image.SetOrigin(tuple(float(o) for o in self.descriptor.origin))
        axes = np.asarray(self.descriptor.direction, dtype=float).reshape(3, 3)
        image.SetDirection(tuple(axes.T.flatten().tolist()))
        return image

    def summary(self) -> Dict[str, Any]:
        """JSON-serializable overview of the volume"""
        status = self.load_status
        return {
            "volume_id": self.volume_id,
            "splitting_tag": self.descriptor.splitting_tag,
            "num_time_points": self.num_time_points,
            "num_frames": self.num_frames,
            "phase_sizes": list(self.descriptor.phase_sizes),
            "dimensions": list(self.descriptor.dimensions),
            "spacing": list(self.descriptor.spacing),
            "origin": list(self.descriptor.origin),
            "size_in_bytes": self.descriptor.size_in_bytes,
            "first_image_ids": [
                ids[0] if ids else None
                for ids in (self.get_image_ids_for_time_point(t) for t in range(self.num_time_points))
            ],
            "loaded": status.loaded,
            "loading": status.loading,
            "cancelled": status.cancelled,
            "destroyed": self.is_destroyed,
        }
