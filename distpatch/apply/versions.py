"""Versions and version ranges.

Versions follow the ``major.minor.micro.qualifier`` scheme: the three
numeric parts compare numerically, the qualifier compares as a plain
string, and an empty qualifier sorts before any other. Parsing is
lenient, so Maven-style strings such as ``1.0-SNAPSHOT`` or
``2.4.0.redhat-1`` map onto that scheme instead of failing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from distpatch.errors import VersionParseError

_VERSION_RE = re.compile(r"^(\d+)(?:\.(\d+)(?:\.(\d+))?)?(?:[.\-_]?(.*))?$")
_QUALIFIER_JUNK = re.compile(r"[^A-Za-z0-9_\-]")
_RANGE_RE = re.compile(r"^([\[(])\s*([^,\s]+)\s*,\s*([^,\s]+)\s*([\])])$")


@dataclass(frozen=True, order=True)
class Version:
    """A comparable ``major.minor.micro.qualifier`` version."""

    major: int = 0
    minor: int = 0
    micro: int = 0
    qualifier: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a version string, normalizing non-standard forms.

        Missing numeric parts default to 0. Anything after the numeric
        parts becomes the qualifier, with characters outside
        ``[A-Za-z0-9_-]`` replaced by ``_``. Text that does not start
        with a digit becomes the qualifier of ``0.0.0``.
        """
        text = text.strip()
        if not text:
            return cls()
        match = _VERSION_RE.match(text)
        if match is None:
            return cls(qualifier=_QUALIFIER_JUNK.sub("_", text))
        major, minor, micro, qualifier = match.groups()
        return cls(
            major=int(major),
            minor=int(minor or 0),
            micro=int(micro or 0),
            qualifier=_QUALIFIER_JUNK.sub("_", qualifier or ""),
        )

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.micro}"
        return f"{base}.{self.qualifier}" if self.qualifier else base


@dataclass(frozen=True)
class VersionRange:
    """An interval of versions.

    A ``ceiling`` of None means the range is unbounded above.
    """

    floor: Version
    ceiling: Version | None = None
    floor_inclusive: bool = True
    ceiling_inclusive: bool = False

    @classmethod
    def parse(cls, spec: str) -> VersionRange:
        """Parse ``[a,b]``, ``[a,b)``, ``(a,b]``, ``(a,b)`` or a bare ``a``.

        A bare version means "at least this version".

        Raises:
            VersionParseError: If the spec is empty or not interval shaped.
        """
        spec = spec.strip()
        if not spec:
            raise VersionParseError("Empty version range")

        if spec[0] not in "[(":
            if any(c in spec for c in ",[]()"):
                raise VersionParseError(f"Invalid version range: {spec}")
            return cls(floor=Version.parse(spec))

        match = _RANGE_RE.match(spec)
        if match is None:
            raise VersionParseError(f"Invalid version range: {spec}")
        open_bracket, floor, ceiling, close_bracket = match.groups()
        return cls(
            floor=Version.parse(floor),
            ceiling=Version.parse(ceiling),
            floor_inclusive=open_bracket == "[",
            ceiling_inclusive=close_bracket == "]",
        )

    @classmethod
    def default_for(cls, version: Version) -> VersionRange:
        """``[major.minor.0, major.(minor+1).0)`` around the given version."""
        return cls(
            floor=Version(version.major, version.minor, 0),
            ceiling=Version(version.major, version.minor + 1, 0),
            floor_inclusive=True,
            ceiling_inclusive=False,
        )

    def contains(self, version: Version) -> bool:
        """Whether the version lies inside the range, honoring inclusivity."""
        if self.floor_inclusive:
            if version < self.floor:
                return False
        elif version <= self.floor:
            return False

        if self.ceiling is None:
            return True
        if self.ceiling_inclusive:
            return version <= self.ceiling
        return version < self.ceiling

    def __str__(self) -> str:
        if self.ceiling is None:
            return str(self.floor)
        left = "[" if self.floor_inclusive else "("
        right = "]" if self.ceiling_inclusive else ")"
        return f"{left}{self.floor},{self.ceiling}{right}"
