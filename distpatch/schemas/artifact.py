"""Artifact coordinate model.

An artifact is a versioned binary module stored in a Maven-style
repository tree. The coordinate knows how to render itself as a
repository-relative path, a ``mvn:`` URI and a colon-separated string.
Parsing lives in distpatch.apply.coordinates.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TYPE = "jar"


class ArtifactCoordinate(BaseModel):
    """Identity of a versioned artifact.

    Equality and hashing cover every field, including the version. Use
    ``is_same_but_version`` to decide whether two coordinates name the
    same module.
    """

    model_config = ConfigDict(frozen=True)

    group_id: str = Field(min_length=1, description="Dotted group id")
    artifact_id: str = Field(min_length=1, description="Artifact name")
    version: str = Field(description="Version string as written in the coordinate")
    type: str = Field(default=DEFAULT_TYPE, min_length=1, description="Packaging type")
    classifier: str | None = Field(default=None, description="Optional classifier")

    @property
    def path(self) -> str:
        """Repository-relative path of the artifact file.

        ``g/r/o/u/p/artifactId/version/artifactId[-classifier]-version.type``
        """
        classifier = f"-{self.classifier}" if self.classifier is not None else ""
        return (
            f"{self.group_id.replace('.', '/')}/{self.artifact_id}/{self.version}/"
            f"{self.artifact_id}{classifier}-{self.version}.{self.type}"
        )

    def to_uri(self) -> str:
        """Render as ``mvn:groupId/artifactId/version[/type[/classifier]]``."""
        uri = f"mvn:{self.group_id}/{self.artifact_id}/{self.version}"
        if self.type != DEFAULT_TYPE or self.classifier is not None:
            uri += f"/{self.type}"
            if self.classifier is not None:
                uri += f"/{self.classifier}"
        return uri

    def is_same_but_version(self, other: ArtifactCoordinate) -> bool:
        """Whether both coordinates name the same module, ignoring version."""
        return (
            self.group_id == other.group_id
            and self.artifact_id == other.artifact_id
            and self.type == other.type
            and self.classifier == other.classifier
        )

    def __str__(self) -> str:
        text = f"{self.group_id}:{self.artifact_id}:{self.version}"
        if self.type != DEFAULT_TYPE or self.classifier is not None:
            text += f":{self.type}"
            if self.classifier is not None:
                text += f":{self.classifier}"
        return text
