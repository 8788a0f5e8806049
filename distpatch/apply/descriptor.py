"""Patch descriptor reading and writing.

Descriptors are properties files stored at the top level of a patch
archive with a ``.patch`` suffix::

    id = patch-1
    description = Fixes for the web console
    bundle.count = 1
    bundle.0 = mvn:org.example/console/1.0.5
    bundle.0.range = [1.0,2.0)
    file.count = 1
    file.0 = etc/console.cfg
    requirement.count = 0
    migrator-bundle = mvn:org.example/migrator/1.0.0
"""

from __future__ import annotations

import logging

from distpatch.apply.source import PatchSource
from distpatch.errors import DescriptorError
from distpatch.schemas.patch import PatchDescriptor

logger = logging.getLogger(__name__)

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def _unescape(text: str) -> str:
    out: list[str] = []
    chars = iter(text)
    for c in chars:
        if c != "\\":
            out.append(c)
            continue
        nxt = next(chars, "")
        if nxt == "u":
            digits = "".join(next(chars, "") for _ in range(4))
            try:
                out.append(chr(int(digits, 16)))
            except ValueError:
                raise DescriptorError(f"Malformed \\uXXXX escape: \\u{digits}") from None
            continue
        out.append(_ESCAPES.get(nxt, nxt))
    text = "".join(out)
    try:
        # Characters outside the BMP arrive as escaped surrogate pairs.
        return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le")
    except UnicodeDecodeError:
        raise DescriptorError(f"Unpaired surrogate escape in: {text!r}") from None


def _escape(text: str) -> str:
    out: list[str] = []
    for c in text:
        if ord(c) < 0x80:
            out.append(c)
            continue
        units = c.encode("utf-16-be")
        for i in range(0, len(units), 2):
            out.append(f"\\u{int.from_bytes(units[i:i + 2], 'big'):04x}")
    return "".join(out)


def _split_key_value(line: str) -> tuple[str, str]:
    """Split a logical properties line at the first unescaped separator."""
    i = 0
    while i < len(line):
        c = line[i]
        if c == "\\":
            i += 2
            continue
        if c in "=:" or c.isspace():
            break
        i += 1
    key = line[:i]
    rest = line[i:].lstrip()
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip()
    return _unescape(key), _unescape(rest)


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java-style properties text.

    Supports ``#``/``!`` comments, ``=``/``:``/whitespace separators,
    backslash line continuations and the common escapes.
    """
    props: dict[str, str] = {}
    pending = ""
    for raw in text.splitlines():
        line = raw.lstrip()
        if not pending and (not line or line[0] in "#!"):
            continue
        # An odd number of trailing backslashes continues the line
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending += line[:-1]
            continue
        line = pending + line
        pending = ""
        if line:
            key, value = _split_key_value(line)
            props[key] = value
    if pending:
        key, value = _split_key_value(pending)
        props[key] = value
    return props


def _indexed(props: dict[str, str], name: str) -> list[str]:
    raw_count = props.get(f"{name}.count", "0").strip() or "0"
    try:
        count = int(raw_count)
    except ValueError as e:
        raise DescriptorError(f"Invalid {name}.count: {raw_count!r}") from e
    values = []
    for i in range(count):
        value = props.get(f"{name}.{i}")
        if value is None:
            raise DescriptorError(f"Missing {name}.{i} (declared {count})")
        values.append(value.strip())
    return values


def load_descriptor(text: str) -> PatchDescriptor:
    """Build a PatchDescriptor from descriptor text.

    Raises:
        DescriptorError: If the id is missing or an indexed list is
            inconsistent with its declared count.
    """
    props = parse_properties(text)
    patch_id = props.get("id", "").strip()
    if not patch_id:
        raise DescriptorError("Patch descriptor has no id")

    bundles = _indexed(props, "bundle")
    ranges = {}
    for i, bundle in enumerate(bundles):
        spec = props.get(f"bundle.{i}.range", "").strip()
        if spec:
            ranges[bundle] = spec

    return PatchDescriptor(
        id=patch_id,
        description=props.get("description", "").strip(),
        requirements=_indexed(props, "requirement"),
        bundles=bundles,
        files=_indexed(props, "file"),
        version_ranges=ranges,
        migrator_bundle=props.get("migrator-bundle", "").strip() or None,
    )


def dump_descriptor(descriptor: PatchDescriptor) -> str:
    """Render a descriptor in the format read by load_descriptor."""
    lines = [f"id = {descriptor.id}", f"description = {_escape(descriptor.description)}"]
    lines.append(f"bundle.count = {len(descriptor.bundles)}")
    for i, bundle in enumerate(descriptor.bundles):
        lines.append(f"bundle.{i} = {bundle}")
        spec = descriptor.version_range(bundle)
        if spec:
            lines.append(f"bundle.{i}.range = {spec}")
    lines.append(f"file.count = {len(descriptor.files)}")
    lines.extend(f"file.{i} = {name}" for i, name in enumerate(descriptor.files))
    lines.append(f"requirement.count = {len(descriptor.requirements)}")
    lines.extend(
        f"requirement.{i} = {req}" for i, req in enumerate(descriptor.requirements)
    )
    if descriptor.migrator_bundle:
        lines.append(f"migrator-bundle = {descriptor.migrator_bundle}")
    return "\n".join(lines) + "\n"


def find_descriptors(source: PatchSource, suffix: str = ".patch") -> list[PatchDescriptor]:
    """Load every top-level descriptor of a patch, in entry order.

    Descriptors are read as ISO-8859-1, like Java properties files;
    other characters are written as \\uXXXX escapes.
    """
    descriptors = []
    for name in source.names():
        if "/" in name or not name.endswith(suffix):
            continue
        stream = source.open(name)
        if stream is None:
            continue
        with stream:
            text = stream.read().decode("latin-1")
        logger.debug("Loaded patch descriptor %s", name)
        descriptors.append(load_descriptor(text))
    return descriptors
