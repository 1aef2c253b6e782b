from __future__ import annotations


class SplitError(Exception):
    """Base class for failures raised while splitting a schematic."""


class InvalidConfiguration(SplitError):
    """Raised when the planner is handed a chunk edge it cannot use."""


class MissingRegionData(SplitError):
    """Raised when a region lacks its position or size."""


class ChunkExtractionFault(SplitError):
    """Raised when a chunk cannot be cut out of its source region."""


class PersistenceFault(SplitError):
    """Raised when a chunk schematic or material list cannot be written."""


class NoChunksProduced(SplitError):
    """Raised when a split finished without persisting a single chunk."""


class SchematicFormatError(SplitError):
    """Raised when a .litematic file does not have the expected structure."""
