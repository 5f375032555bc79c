"""YAML frontmatter parsing for markdown artifacts."""

import logging
import re
from typing import Any, Dict, Tuple

import yaml

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?$\n?", re.DOTALL | re.MULTILINE
)


def split_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
    """Split YAML frontmatter from a markdown body.

    Args:
        content: Full markdown document

    Returns:
        Tuple of (metadata mapping, body). Documents without a header, or
        with a header that is not a YAML mapping, yield an empty mapping.
    """
    content = content.lstrip("\ufeff")
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return {}, content

    raw_meta = match.group(1)
    body = content[match.end():]
    try:
        metadata = yaml.safe_load(raw_meta) or {}
    except yaml.YAMLError as exc:
        logger.warning("Ignoring malformed frontmatter: %s", exc)
        return {}, body

    if not isinstance(metadata, dict):
        logger.warning("Ignoring frontmatter that is not a mapping (%s)", type(metadata).__name__)
        return {}, body

    return {str(key): value for key, value in metadata.items()}, body


def parse_frontmatter(content: str) -> Dict[str, Any]:
    """Return only the frontmatter mapping of a markdown document."""
    metadata, _ = split_frontmatter(content)
    return metadata
