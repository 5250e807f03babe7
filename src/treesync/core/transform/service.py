"""
YAML field rewriter.

Stamps a value (typically a release version) into a dotted field such as
`spec.version` in every YAML file under a directory. Only documents that
already contain the field are touched, and within them only the field's
scalar text is replaced. Everything else is left byte-for-byte as it was.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from treesync.core.sync.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_FIELD = "spec.version"
DEFAULT_EXTENSIONS = (".yml", ".yaml")


class TransformError(Exception):
    """Raised when a matching YAML file cannot be rewritten."""


class TransformResult(BaseModel):
    """Outcome of a rewrite pass over a directory."""

    field: str = Field(description="Dotted field that was rewritten")
    value: str = Field(description="Value written into the field")
    scanned: list[Path] = Field(default_factory=list, description="YAML files inspected")
    updated: list[Path] = Field(default_factory=list, description="Files that were rewritten")
    skipped: list[Path] = Field(
        default_factory=list,
        description="Files that could not be parsed and were left alone",
    )

    def summary(self) -> str:
        parts = [f"{len(self.updated)} of {len(self.scanned)} file(s) updated"]
        if self.skipped:
            parts.append(f"{len(self.skipped)} skipped (invalid YAML)")
        return ", ".join(parts)


_NULL_TAG = "tag:yaml.org,2002:null"
_BOOL_TAG = "tag:yaml.org,2002:bool"
_FALSE_WORDS = frozenset({"false", "no", "off"})


def find_scalar(node: yaml.Node | None, path: list[str]) -> yaml.ScalarNode | None:
    """
    Walk mapping keys along `path` and return the scalar node found there.

    A field whose value is null or false counts as absent, as does a field
    holding a mapping or sequence.

    Example:
        >>> doc = yaml.compose("spec:\\n  version: 1.0\\n")
        >>> find_scalar(doc, ["spec", "version"]).value
        '1.0'
    """
    for key in path:
        if not isinstance(node, yaml.MappingNode):
            return None
        match = None
        for key_node, value_node in node.value:
            if isinstance(key_node, yaml.ScalarNode) and key_node.value == key:
                match = value_node
        node = match

    if not isinstance(node, yaml.ScalarNode):
        return None
    if node.tag == _NULL_TAG:
        return None
    if node.tag == _BOOL_TAG and node.value.lower() in _FALSE_WORDS:
        return None
    return node


def render_scalar(value: str, style: str | None = None) -> str:
    """
    Render `value` as a single-line YAML string scalar.

    Quotes are added where a plain scalar would load as another type
    (e.g. "2.1"). A quoted original keeps its quote style.
    """
    if "\n" in value and style != '"':
        style = '"'
    rendered = yaml.safe_dump(
        value,
        default_style=style if style in ("'", '"') else None,
        width=float("inf"),
        allow_unicode=True,
    )
    return rendered.split("\n", 1)[0]


def find_yaml_files(root: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> list[Path]:
    """List files under `root` whose suffix is one of `extensions`, sorted."""
    suffixes = {ext.lower() for ext in extensions}
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in suffixes)


def _write_atomic(path: Path, content: str) -> None:
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def rewrite_file(path: Path, field_path: list[str], value: str) -> bool | None:
    """
    Rewrite `field_path` in every document of one YAML file.

    Only the scalar text of the field is replaced; comments, quoting and
    layout elsewhere in the file are kept.

    Returns:
        True if the file was rewritten, False if no document has the field,
        None if the file is not valid YAML.

    Raises:
        TransformError: If the file cannot be read or written
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TransformError(f"Cannot read {path}: {e}") from e

    try:
        documents = list(yaml.compose_all(content, Loader=yaml.SafeLoader))
    except yaml.YAMLError as e:
        logger.warning("Skipping %s: invalid YAML (%s)", path, e)
        return None

    spans = []
    for document in documents:
        node = find_scalar(document, field_path)
        if node is not None:
            spans.append((node.start_mark.index, node.end_mark.index, node.style))

    if not spans:
        return False

    rewritten = content
    for start, end, style in sorted(spans, reverse=True):
        text = render_scalar(value, style)
        if style in ("|", ">"):
            # Block scalars end after their final line break
            text += "\n"
        rewritten = rewritten[:start] + text + rewritten[end:]

    if rewritten == content:
        return True
    try:
        _write_atomic(path, rewritten)
    except OSError as e:
        raise TransformError(f"Cannot write {path}: {e}") from e
    return True


def rewrite_field(
    target_dir: Path | str,
    value: str,
    field: str = DEFAULT_FIELD,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> TransformResult:
    """
    Set `field` to `value` in every YAML file under `target_dir` that has it.

    Args:
        target_dir: Directory searched recursively
        value: New value, written as a string
        field: Dotted path of the field (default "spec.version")
        extensions: File suffixes treated as YAML

    Returns:
        TransformResult listing scanned, updated and skipped files

    Raises:
        InvalidArgumentError: If target_dir or value is empty, or the
            directory does not exist
        TransformError: If a matching file cannot be read or written

    Example:
        >>> result = rewrite_field("./manifests", "1.0.0-release.123")
        >>> print(result.summary())
        2 of 3 file(s) updated
    """
    missing = [
        name
        for name, given in (("target_dir", str(target_dir)), ("value", value))
        if not given.strip()
    ]
    if missing:
        raise InvalidArgumentError(
            f"Missing required parameter(s): {', '.join(missing)}",
            fields=missing,
        )

    root = Path(target_dir)
    if not root.is_dir():
        raise InvalidArgumentError(
            f"Target directory does not exist: {target_dir}",
            fields=["target_dir"],
        )

    field_path = field.split(".")
    if any(not part for part in field_path):
        raise InvalidArgumentError(f"Invalid field path: {field!r}", fields=["field"])

    result = TransformResult(field=field, value=value)
    for path in find_yaml_files(root, extensions):
        result.scanned.append(path)
        outcome = rewrite_file(path, field_path, value)
        if outcome is None:
            result.skipped.append(path)
        elif outcome:
            logger.info("Updated %s in %s", field, path)
            result.updated.append(path)

    return result
