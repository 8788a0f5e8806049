"""Data models shared across the patch engine."""

from distpatch.schemas.artifact import ArtifactCoordinate
from distpatch.schemas.patch import (
    ApplyResult,
    ApplyState,
    PatchDescriptor,
    PatcherConfig,
    RollbackResult,
)

__all__ = [
    "ApplyResult",
    "ApplyState",
    "ArtifactCoordinate",
    "PatchDescriptor",
    "PatcherConfig",
    "RollbackResult",
]
