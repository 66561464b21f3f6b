"""Asset selection, fingerprinting and optimization pipeline."""

from .codec import ImageCodec
from .engine import OptimizationEngine
from .errors import AssetError, CodecError
from .hashing import Hasher
from .models import AssetSelection, FileOutcome, FileState, OptimizationReport
from .selection import AssetSelector, backup_path_for
from .status import StatusQuery

__all__ = [
    "AssetError",
    "AssetSelection",
    "AssetSelector",
    "CodecError",
    "FileOutcome",
    "FileState",
    "Hasher",
    "ImageCodec",
    "OptimizationEngine",
    "OptimizationReport",
    "StatusQuery",
    "backup_path_for",
]
