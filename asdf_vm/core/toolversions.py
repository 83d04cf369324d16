"""
Version types and their filesystem encoding.

A version is a (version_type, version) pair. Types with first-class meaning:

    version : an ordinary release string, stored under its own name
    ref     : a git ref, stored as "ref-<ref>" so it never collides with a release
    path    : a user-supplied install location; never stored in the data directory
    system  : defer to whatever is on PATH outside asdf

Any other type is an opaque token and encodes like "version".

Encoded tokens are always a single path segment: "%" and "/" are
percent-encoded, and so are the dots of a bare "." or "..".
"""

from urllib.parse import unquote

VERSION = "version"
REF = "ref"
PATH = "path"
SYSTEM = "system"

_REF_PREFIX = "ref-"


def parse(version_string: str) -> tuple[str, str]:
    """Split a version as written in a version file into (version_type, version).

    >>> parse("ref:v1.2")
    ('ref', 'v1.2')
    >>> parse("1.2.3")
    ('version', '1.2.3')
    """
    if version_string.startswith("ref:"):
        return REF, version_string[len("ref:"):]
    if version_string.startswith("path:"):
        return PATH, version_string[len("path:"):]
    if version_string == SYSTEM:
        return SYSTEM, SYSTEM
    return VERSION, version_string


def _escape_segment(value: str) -> str:
    if value in (".", ".."):
        return value.replace(".", "%2E")
    return value.replace("%", "%25").replace("/", "%2F")


def format_for_fs(version_type: str, version: str) -> str:
    """Encode a version as a single filesystem path segment.

    >>> format_for_fs("ref", "feature/x")
    'ref-feature%2Fx'
    >>> format_for_fs("version", "..")
    '%2E%2E'
    """
    if version_type == REF:
        return f"{_REF_PREFIX}{_escape_segment(version)}"
    return _escape_segment(version)


def parse_from_fs(token: str) -> tuple[str, str]:
    """Inverse of format_for_fs for directory names under installs/."""
    if token.startswith(_REF_PREFIX):
        return REF, unquote(token[len(_REF_PREFIX):])
    return VERSION, unquote(token)


def format_version(version_type: str, version: str) -> str:
    """Render a (version_type, version) pair the way a version file writes it.

    >>> format_version("ref", "main")
    'ref:main'
    """
    if version_type in (REF, PATH):
        return f"{version_type}:{version}"
    return version
