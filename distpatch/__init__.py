"""distpatch — offline patching of installed application distributions."""

__version__ = "0.1.0"

from distpatch.apply import PatchApplier
from distpatch.schemas import ApplyResult, ArtifactCoordinate, PatchDescriptor, RollbackResult

__all__ = [
    "ApplyResult",
    "ArtifactCoordinate",
    "PatchApplier",
    "PatchDescriptor",
    "RollbackResult",
]
