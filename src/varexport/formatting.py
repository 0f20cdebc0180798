"""
Text rendering for exported variables.

Dumps are line oriented and can be read back by a properties-style parser:

    # <doc>
    name=value

Names and values escape ``\\``, ``:`` and ``=`` with a backslash, and every
character outside printable ASCII as ``\\uXXXX`` (lowercase hex, UTF-16
surrogate pairs above U+FFFF). Names also escape every space and a leading
``#`` or ``!``; values escape a leading space. Doc comments only get the
unicode escapes.

The JSON-like dump is a single line ``{name='value', ...}`` with raw text,
kept for consumers that scrape it; it is not real JSON.
"""

import logging
from typing import Dict, Iterable, Optional, TextIO, Tuple

logger = logging.getLogger(__name__)

NULL_TEXT = "null"

_SEPARATOR_ESCAPES = {
    "\\": "\\\\",
    ":": "\\:",
    "=": "\\=",
}

_COMMENT_MARKERS = "#!"
_WHITESPACE = " \t\f"

_CONTROL_UNESCAPES = {
    "t": "\t",
    "n": "\n",
    "r": "\r",
    "f": "\f",
}


def _escape_unicode_char(ch: str) -> str:
    code = ord(ch)
    if 0x20 <= code <= 0x7E:
        return ch
    if code > 0xFFFF:
        code -= 0x10000
        high = 0xD800 + (code >> 10)
        low = 0xDC00 + (code & 0x3FF)
        return f"\\u{high:04x}\\u{low:04x}"
    return f"\\u{code:04x}"


def _escape_char(ch: str, index: int, key: bool) -> str:
    if ch == " " and (key or index == 0):
        return "\\ "
    if ch in _COMMENT_MARKERS and key and index == 0:
        return "\\" + ch
    return _SEPARATOR_ESCAPES.get(ch) or _escape_unicode_char(ch)


def escape(text: str, key: bool = False) -> str:
    """
    Escape a name or value for a dump line.

    Args:
        text: Raw name or rendered value
        key: Escape as a name (all spaces and a leading comment marker);
             otherwise only a leading space is escaped

    Returns:
        Text with separators backslash-escaped and non-ASCII as ``\\uXXXX``
    """
    return "".join(_escape_char(ch, index, key) for index, ch in enumerate(text))


def escape_doc(text: str) -> str:
    """Escape a doc comment (unicode only; separators stay literal)."""
    return "".join(_escape_unicode_char(ch) for ch in text)


def value_text(value) -> str:
    """Natural text form of a value, with ``None`` as ``null``."""
    if value is None:
        return NULL_TEXT
    return str(value)


def format_line(name: str, value) -> str:
    """Render ``name=value`` with both sides escaped."""
    return f"{escape(name, key=True)}={escape(value_text(value))}"


def write_entry(
    out: TextIO,
    name: str,
    value,
    doc: Optional[str] = None,
    include_doc: bool = False
) -> None:
    """
    Write one variable to a dump stream.

    With ``include_doc`` every entry is preceded by a blank line and, when the
    variable has a doc (even an empty one), a ``#`` comment line.

    Args:
        out: Text stream to write to
        name: Name the variable is dumped under
        value: Current value
        doc: Doc text, or None for undocumented variables
        include_doc: Whether to emit the blank separator and doc lines
    """
    if include_doc:
        out.write("\n")
        if doc is not None:
            out.write(f"# {escape_doc(doc)}\n" if doc else "#\n")
    out.write(f"{format_line(name, value)}\n")


def format_json(entries: Iterable[Tuple[str, object]]) -> str:
    """Render ``(name, value)`` pairs as ``{name='value', ...}``."""
    body = ", ".join(f"{name}='{value_text(value)}'" for name, value in entries)
    return "{" + body + "}"


def _split_key(line: str) -> Tuple[str, str]:
    """Split at the first unescaped separator or whitespace, as properties files do."""
    index = 0
    while index < len(line):
        ch = line[index]
        if ch == "\\":
            index += 2
            continue
        if ch in "=:" or ch in _WHITESPACE:
            break
        index += 1
    key, rest = line[:index], line[index:]
    rest = rest.lstrip(_WHITESPACE)
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def unescape(text: str) -> str:
    """
    Reverse :func:`escape` (and :func:`escape_doc`).

    Raises:
        ValueError: If a ``\\u`` escape is truncated or not hexadecimal
    """
    chars = []
    index = 0
    while index < len(text):
        ch = text[index]
        if ch != "\\" or index + 1 == len(text):
            chars.append(ch)
            index += 1
            continue
        marker = text[index + 1]
        if marker == "u":
            digits = text[index + 2:index + 6]
            if len(digits) != 4:
                raise ValueError(f"Truncated unicode escape in {text!r}")
            try:
                chars.append(chr(int(digits, 16)))
            except ValueError:
                raise ValueError(f"Malformed unicode escape \\u{digits} in {text!r}") from None
            index += 6
        else:
            chars.append(_CONTROL_UNESCAPES.get(marker, marker))
            index += 2
    # Recombine surrogate pairs written for characters above U+FFFF; lone surrogates pass through
    return "".join(chars).encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def parse_dump(text: str) -> Dict[str, str]:
    """
    Read a dump produced by :meth:`VarExporter.dump` back into a dict.

    Comment lines (``#`` or ``!``) and blank lines are skipped; the name ends at the
    first unescaped ``=``, ``:`` or whitespace, and whitespace before the
    value is dropped.

    Args:
        text: Dump text

    Returns:
        Mapping of unescaped names to unescaped value text
    """
    result = {}
    for line in text.splitlines():
        stripped = line.lstrip()
        if not stripped or stripped[0] in _COMMENT_MARKERS:
            continue
        key, value = _split_key(stripped)
        result[unescape(key)] = unescape(value)
    logger.debug(f"Parsed {len(result)} variables from dump")
    return result
