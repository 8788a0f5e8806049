"""Patch engine — registry reconciliation, artifacts, backups and rollback.

Applies patch archives to a stopped install in place and rolls back
the plain-file part of a patch from per-patch backups.
"""

from distpatch.apply.engine import PatchApplier

__all__ = ["PatchApplier"]
