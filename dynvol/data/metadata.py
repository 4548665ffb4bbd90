"""
dynvol Metadata Providers

Slice metadata is read through a provider: any callable mapping an image id
to a mapping of DICOM keyword -> value. Resolving ids against real DICOM
sources is left to the caller; the in-memory provider here backs tests and
the CLI.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Union

from ..utils.logging_config import get_logger

logger = get_logger("metadata")

MetadataProvider = Callable[[str], Mapping[str, Any]]


class InMemoryMetadataProvider:
    """
    Dict-backed metadata provider

    Lookups of unknown image ids raise KeyError.
    """

    def __init__(self, records: Mapping[str, Mapping[str, Any]] = None):
        self._records: Dict[str, Dict[str, Any]] = {}
        for image_id, record in (records or {}).items():
            self.add(image_id, record)

    def add(self, image_id: str, record: Mapping[str, Any]) -> None:
        self._records[image_id] = dict(record)

    def __call__(self, image_id: str) -> Mapping[str, Any]:
        try:
            return self._records[image_id]
        except KeyError:
            raise KeyError(f"No metadata registered for image id: {image_id}") from None

    def __contains__(self, image_id: str) -> bool:
        return image_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def image_ids(self) -> List[str]:
        """Registered ids in insertion order"""
        return list(self._records)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryMetadataProvider":
        """
        Load records from a JSON file

        Accepts either an object keyed by image id, or a list of objects each
        carrying an "imageId" key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Metadata file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        if isinstance(data, list):
            records = {}
            for entry in data:
                entry = dict(entry)
                records[entry.pop("imageId")] = entry
            data = records
        elif not isinstance(data, dict):
            raise ValueError(f"Unsupported metadata layout in {path}: {type(data).__name__}")

        logger.info(f"Loaded metadata for {len(data)} image ids from {path.name}")
        return cls(data)
