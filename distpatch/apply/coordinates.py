"""Parsing of artifact coordinates from URIs and repository paths.

Two entry points produce an ArtifactCoordinate:

- ``mvn:`` URIs, as found in patch descriptors and the override registry
- repository-relative paths, as found in the startup pin registry

A path that does not follow the repository layout is not an error: it
simply is not an artifact pin, and ``path_to_coordinate`` returns None.
"""

from __future__ import annotations

import re

from distpatch.errors import CoordinateParseError
from distpatch.schemas.artifact import DEFAULT_TYPE, ArtifactCoordinate

MVN_PREFIX = "mvn:"

_WHITESPACE = re.compile(r"\s+")


def parse_coordinate_uri(uri: str) -> ArtifactCoordinate:
    """Parse ``mvn:groupId/artifactId/version[/type[/classifier]]``.

    All whitespace is removed first. Anything before ``mvn:`` is ignored,
    and the URI is cut at the first ``?`` or ``#`` and then at ``$``.

    Raises:
        CoordinateParseError: If there is no ``mvn:`` prefix or fewer than
            three path segments.
    """
    location = _WHITESPACE.sub("", uri)
    index = location.find(MVN_PREFIX)
    if index < 0:
        raise CoordinateParseError(f"Resource URL is not a maven URL: {location}")
    location = location[index + len(MVN_PREFIX):]

    cuts = [i for i in (location.find("?"), location.find("#")) if i > 0]
    if cuts:
        location = location[: min(cuts)]
    dollar = location.find("$")
    if dollar > 0:
        location = location[:dollar]

    parts = location.split("/")
    if len(parts) < 3:
        raise CoordinateParseError(f"Bad maven url: {location}")

    type_ = parts[3] if len(parts) > 3 else DEFAULT_TYPE
    classifier = parts[4] if len(parts) > 4 else None
    try:
        return ArtifactCoordinate(
            group_id=parts[0],
            artifact_id=parts[1],
            version=parts[2],
            type=type_,
            classifier=classifier,
        )
    except ValueError as e:
        raise CoordinateParseError(f"Bad maven url: {location}") from e


def try_parse_coordinate_uri(uri: str) -> ArtifactCoordinate | None:
    """Like parse_coordinate_uri, but returns None for non-``mvn:`` URIs.

    Malformed ``mvn:`` URIs still raise CoordinateParseError.
    """
    if MVN_PREFIX not in _WHITESPACE.sub("", uri):
        return None
    return parse_coordinate_uri(uri)


def path_to_coordinate(path: str) -> ArtifactCoordinate | None:
    """Infer a coordinate from a repository-relative artifact path.

    The path must have at least four segments,
    ``group/.../artifactId/version/filename``, and the filename must
    start with ``artifactId-version``. A ``-`` right after that prefix
    introduces a classifier running up to the last ``.``; the text after
    the last ``.`` is the type.

    Returns:
        The coordinate, or None when the path is not shaped like a
        repository artifact.
    """
    segments = path.split("/")
    if len(segments) < 4:
        return None

    filename = segments[-1]
    artifact_id = segments[-3]
    version = segments[-2]
    if not artifact_id or not version:
        return None
    prefix = f"{artifact_id}-{version}"
    if not filename.startswith(prefix):
        return None

    dot = filename.rfind(".")
    if dot < len(prefix):
        return None

    classifier = None
    if filename[len(prefix)] == "-":
        classifier = filename[len(prefix) + 1 : dot] or None
    type_ = filename[dot + 1 :]

    group_segments = segments[:-3]
    if not type_ or not all(group_segments):
        return None

    return ArtifactCoordinate(
        group_id=".".join(group_segments),
        artifact_id=artifact_id,
        version=version,
        type=type_,
        classifier=classifier,
    )
