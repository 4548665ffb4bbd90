"""
dynvol Errors

Exception hierarchy shared by the assembler, its collaborators and the CLI.
"""


class DynVolError(Exception):
    """Base class for all dynvol errors"""


class InvalidArgumentError(DynVolError, ValueError):
    """Caller supplied missing or malformed arguments"""


class GroupingFailure(DynVolError):
    """Image ids could not be partitioned into temporal phases"""


class DescriptionFailure(DynVolError):
    """A phase's image ids could not be resolved to consistent geometry"""


class VolumeDestroyedError(DynVolError):
    """Operation attempted on a volume whose buffers were released"""


class ConfigError(DynVolError, ValueError):
    """Configuration file or override is invalid"""
