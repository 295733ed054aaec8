import hashlib
import re

_LITERAL_OR_COMMENT = re.compile(
    r"'(?:[^']|'')*'"
    r"|--[^\n]*"
    r"|/\*.*?\*/",
    re.DOTALL,
)
_UUID = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\b"
)
_PLACEHOLDER = re.compile(r"\$\d+|%\(\w+\)s|%s|(?<![:\w]):[A-Za-z_]\w*")
_NUMBER = re.compile(r"(?<![\w.$])\d+(?:\.\d+)?(?:[eE][+-]?\d+)?\b")
_IN_LIST = re.compile(r"\bIN\s*\(\s*\?(?:\s*,\s*\?)*\s*\)", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_QUOTED_IDENTIFIER = re.compile(r'("(?:[^"]|"")*")')


def _replace_literal(match: re.Match[str]) -> str:
    return "?" if match.group(0).startswith("'") else " "


def canonicalize(sql: str) -> str:
    """Reduce a statement to its literal-free, upper-cased pattern.

    Statements that differ only in literal values or bind placeholders share
    the same canonical text. Quoted identifiers keep their case. Malformed
    input is still reduced as far as the patterns allow; this never raises.
    """
    text = _LITERAL_OR_COMMENT.sub(_replace_literal, sql)
    parts = _QUOTED_IDENTIFIER.split(text)
    for index in range(0, len(parts), 2):
        part = _UUID.sub("?", parts[index])
        part = _PLACEHOLDER.sub("?", part)
        part = _NUMBER.sub("?", part)
        parts[index] = _WHITESPACE.sub(" ", part).upper()
    text = _IN_LIST.sub("IN (?)", "".join(parts))
    return text.strip()


def content_hash(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def fingerprint(sql: str) -> str:
    """Hash of the canonical form; equal for statements of the same pattern."""
    return content_hash(canonicalize(sql))
