"""Shared fixtures: synthetic 4D slice metadata"""

import logging
import random

import numpy as np
import pytest

from dynvol.data.metadata import InMemoryMetadataProvider
from dynvol.data.phase_info import PhaseInfo, VolumeGeometry


def slice_record(position_z, phase_value, tag="TemporalPositionIdentifier", **extra):
    record = {
        "Rows": 4,
        "Columns": 3,
        "ImageOrientationPatient": [1, 0, 0, 0, 1, 0],
        "ImagePositionPatient": [-10.0, 5.0, position_z],
        "PixelSpacing": [0.5, 0.75],
        "BitsAllocated": 16,
        "PixelRepresentation": 0,
        "RescaleSlope": 1,
        "RescaleIntercept": 0,
        "Modality": "MR",
        "SeriesInstanceUID": "1.2.3.4",
        tag: phase_value,
    }
    record.update(extra)
    return record


def build_series(num_phases=3, num_slices=4, tag="TemporalPositionIdentifier", shuffle=False, seed=0):
    """
    Build (provider, image_ids) for a series with ids "p{phase}s{slice}"

    Slice s sits at z = 2.5 * s; phase p carries tag value p + 1.
    """
    provider = InMemoryMetadataProvider()
    image_ids = []
    for phase in range(num_phases):
        for index in range(num_slices):
            image_id = f"p{phase}s{index}"
            provider.add(image_id, slice_record(2.5 * index, phase + 1, tag=tag))
            image_ids.append(image_id)
    if shuffle:
        random.Random(seed).shuffle(image_ids)
    return provider, image_ids


@pytest.fixture(autouse=True)
def reset_dynvol_logging():
    yield
    logger = logging.getLogger("dynvol")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def fake_phase(image_ids, fill):
    """PhaseInfo with a 1x1xN geometry and a buffer filled with `fill`"""
    n = len(image_ids)
    return PhaseInfo(
        geometry=VolumeGeometry(
            dimensions=(1, 1, n),
            spacing=(1.0, 1.0, 1.0),
            origin=(0.0, 0.0, 0.0),
            size_in_bytes=n * 4,
        ),
        metadata={"fill": fill},
        sorted_image_ids=list(image_ids),
        scalar_data=np.full(n, fill, dtype=np.float32),
    )


class FakeCollaborators:
    """Grouper/describer pair driven by explicit phase groups"""

    def __init__(self, groups, splitting_tag="TemporalPositionIdentifier"):
        self.groups = [list(g) for g in groups]
        self.splitting_tag = splitting_tag
        self.described = []
        self.phases = []

    def grouper(self, image_ids):
        return [list(g) for g in self.groups], self.splitting_tag

    def describer(self, image_ids):
        phase = fake_phase(image_ids, fill=len(self.described))
        self.described.append(list(image_ids))
        self.phases.append(phase)
        return phase
