"""Patch descriptor, engine configuration and result schemas.

Defines the read-only descriptor of a patch, the install layout the
engine works against, and the audit records produced by apply and
rollback.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class PatcherConfig(BaseModel):
    """Install layout, relative to the install root.

    Loaded from the [patcher] table of defaults.toml.
    """

    model_config = ConfigDict(extra="forbid")

    startup_file: str = Field(
        default="etc/startup.properties", description="Startup pin registry"
    )
    overrides_file: str = Field(
        default="etc/overrides.properties", description="Override registry"
    )
    backups_dir: str = Field(
        default="data/patch/backups", description="Root of per-patch backups"
    )
    system_dir: str = Field(default="system", description="Installed artifact repository")
    deploy_dir: str = Field(default="deploy", description="Hot deploy directory")
    repository_prefix: str = Field(
        default="repository/", description="Artifact payload prefix inside a patch"
    )
    descriptor_suffix: str = Field(
        default=".patch", description="Suffix of top-level descriptor entries"
    )
    override_range_separator: str = Field(
        default=";range=", description="Separator between an override and its range"
    )


class PatchDescriptor(BaseModel):
    """Metadata of a single patch, as read from its descriptor file."""

    id: str = Field(min_length=1, description="Patch identifier")
    description: str = Field(default="", description="Human readable description")
    requirements: list[str] = Field(
        default_factory=list, description="Patch ids that must be installed first"
    )
    bundles: list[str] = Field(
        default_factory=list, description="Artifact coordinate URIs shipped by the patch"
    )
    files: list[str] = Field(
        default_factory=list, description="Install-relative plain files to overwrite"
    )
    version_ranges: dict[str, str] = Field(
        default_factory=dict, description="Explicit version range per bundle URI"
    )
    migrator_bundle: str | None = Field(
        default=None, description="Artifact URI staged into the deploy directory"
    )

    def version_range(self, bundle: str) -> str | None:
        """Explicit range for a bundle, or None when the default applies."""
        spec = self.version_ranges.get(bundle)
        return spec or None


class ApplyState(StrEnum):
    """Progress of a single patch application.

    States advance strictly in declaration order. A failed apply stays
    at the last state it reached.
    """

    LOADED = "loaded"
    OVERRIDES_COMPUTED = "overrides_computed"
    ARTIFACTS_RECONCILED = "artifacts_reconciled"
    REGISTRIES_PERSISTED = "registries_persisted"
    FILES_PATCHED = "files_patched"
    MIGRATOR_STAGED = "migrator_staged"
    APPLIED = "applied"


class ApplyResult(BaseModel):
    """Audit record for one patch application."""

    patch_id: str = Field(description="Id of the applied patch")
    state: ApplyState = Field(default=ApplyState.LOADED, description="Last state reached")
    extracted: list[str] = Field(
        default_factory=list, description="Artifact paths copied into the system repository"
    )
    deleted: list[str] = Field(
        default_factory=list, description="Superseded artifact paths removed"
    )
    overrides: list[str] = Field(
        default_factory=list, description="Override registry as persisted"
    )
    startup: list[str] = Field(
        default_factory=list, description="Startup pin registry as persisted"
    )
    files_updated: list[str] = Field(
        default_factory=list, description="Existing files overwritten (with backup)"
    )
    files_added: list[str] = Field(
        default_factory=list, description="Files created by the patch"
    )
    migrator_staged: str = Field(
        default="", description="Deploy path of the staged migrator, if any"
    )
    warnings: list[str] = Field(default_factory=list, description="Non-fatal warnings")
    errors: list[str] = Field(
        default_factory=list, description="Skipped items (missing artifacts or files)"
    )


class RollbackResult(BaseModel):
    """Audit record for one patch rollback."""

    patch_id: str = Field(description="Id of the rolled back patch")
    restored: list[str] = Field(
        default_factory=list, description="Files restored from backup"
    )
    removed: list[str] = Field(
        default_factory=list, description="Files deleted because the patch added them"
    )
