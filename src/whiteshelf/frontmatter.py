"""Frontmatter header + markdown body documents.

The header is a small, line-oriented subset of YAML: one ``key: value`` per
line, where a value is a scalar, a flow array (``[a, b]``) or a flow map
(``{"k": v}``). Arrays may hold scalars or flat maps; flat maps may hold
scalars or arrays of scalars. Nothing nests deeper than that.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .errors import ParseError

MARKER = "---"

Scalar = Union[str, int, float, bool]
FlatMap = Dict[str, Union[Scalar, List[Scalar]]]
Value = Union[Scalar, List[Union[Scalar, FlatMap]], FlatMap]

SCALAR_TYPES = (str, int, float, bool)

KEY_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]*")
_LINE_RE = re.compile(r"([A-Za-z0-9_][A-Za-z0-9_.-]*):(?:[ \t]+(.*))?")
_INT_RE = re.compile(r"-?(?:0|[1-9][0-9]*)")
_FLOAT_RE = re.compile(
    r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+(?:[eE][-+]?[0-9]+)?|[eE][-+]?[0-9]+)"
)

_NULL_TOKENS = {"null", "Null", "NULL", "~"}
_BOOL_TOKENS = {
    "true": True,
    "True": True,
    "TRUE": True,
    "false": False,
    "False": False,
    "FALSE": False,
}
# Leading characters that start YAML constructs outside the subset
_RESERVED_START = set("|>&*!%@`")
_FLOW_END = set(",]}")

_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_UNESCAPES = {
    "\\": "\\",
    '"': '"',
    "/": "/",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
}


@dataclass
class FrontmatterDocument:
    """Parsed header fields (in file order) plus the untouched body."""

    fields: Dict[str, Value] = field(default_factory=dict)
    body: str = ""


def value_kind(value) -> str:
    """Classify a value as "scalar", "array" or "map".

    Raises ParseError for anything outside the supported value types.
    """
    if isinstance(value, SCALAR_TYPES):
        return "scalar"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "map"
    raise ParseError(f"unsupported value type: {type(value).__name__}")


def split_frontmatter(text: str) -> Tuple[Optional[str], str]:
    """Split text into (header, body).

    The header is delimited by --- on its own line at the very start and a
    matching --- line. Returns (None, text) if there is no complete header.
    """
    lines = text.split("\n")

    if lines[0].rstrip() != MARKER:
        return (None, text)

    for i in range(1, len(lines)):
        if lines[i].rstrip() == MARKER:
            header = "\n".join(lines[1:i])
            body = "\n".join(lines[i + 1 :])
            return (header, body)

    # No closing delimiter: treat entire content as body
    return (None, text)


def parse(raw: str) -> FrontmatterDocument:
    """Parse raw document text into fields and body."""
    header, body = split_frontmatter(raw)
    if header is None:
        return FrontmatterDocument(fields={}, body=raw)

    fields: Dict[str, Value] = {}
    for lineno, line in enumerate(header.split("\n"), 2):
        line = line.rstrip()
        if not line:
            continue
        key, value = _parse_line(line, lineno)
        if key in fields:
            raise ParseError(f"duplicate key '{key}'", line=lineno)
        fields[key] = value

    return FrontmatterDocument(fields=fields, body=body)


def _parse_line(line: str, lineno: int) -> Tuple[str, Value]:
    if line[0] in " \t":
        raise ParseError("indented lines (nested blocks) are not supported", line=lineno)
    if line.startswith("-"):
        raise ParseError("block sequences are not supported", line=lineno)
    if line.startswith("#"):
        raise ParseError("comments are not supported", line=lineno)

    match = _LINE_RE.fullmatch(line)
    if match is None:
        raise ParseError("expected 'key: value'", line=lineno)

    key, text = match.group(1), match.group(2)
    if text is None or not text.strip():
        raise ParseError(f"missing value for '{key}'", line=lineno)

    return key, _Scanner(text.strip(), lineno).field_value()


class _Scanner:
    """Recursive-descent reader for a single field value."""

    def __init__(self, text: str, line: int):
        self.text = text
        self.pos = 0
        self.line = line

    def error(self, message: str) -> ParseError:
        return ParseError(f"{message} at column {self.pos + 1}", line=self.line)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> None:
        while self.peek() in (" ", "\t"):
            self.pos += 1

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            raise self.error(f"expected '{ch}'")
        self.pos += 1

    def field_value(self) -> Value:
        ch = self.peek()
        if ch == "[":
            value = self.array(in_map=False)
        elif ch == "{":
            value = self.flat_map()
        elif ch in ('"', "'"):
            value = self.quoted()
        else:
            token = self.text
            self.pos = len(self.text)
            value = self.bare(token)

        self.skip_ws()
        if self.pos < len(self.text):
            raise self.error("unexpected trailing text")
        return value

    def array(self, in_map: bool) -> list:
        self.expect("[")
        items = []
        self.skip_ws()
        if self.peek() == "]":
            self.pos += 1
            return items

        while True:
            self.skip_ws()
            ch = self.peek()
            if ch == "[":
                raise self.error("nested arrays are not supported")
            if ch == "{":
                if in_map:
                    raise self.error("maps inside a map are not supported")
                items.append(self.flat_map())
            else:
                items.append(self.flow_scalar())

            self.skip_ws()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
                self.skip_ws()
                if self.peek() == "]":
                    self.pos += 1
                    return items
            elif ch == "]":
                self.pos += 1
                return items
            elif not ch:
                raise self.error("unterminated array")
            else:
                raise self.error("expected ',' or ']'")

    def flat_map(self) -> FlatMap:
        self.expect("{")
        mapping: FlatMap = {}
        self.skip_ws()
        if self.peek() == "}":
            self.pos += 1
            return mapping

        while True:
            self.skip_ws()
            if self.peek() in ('"', "'"):
                key = self.quoted()
            else:
                key = self.bare_key()
            if key in mapping:
                raise self.error(f"duplicate key '{key}'")

            self.skip_ws()
            self.expect(":")
            self.skip_ws()
            ch = self.peek()
            if ch == "[":
                mapping[key] = self.array(in_map=True)
            elif ch == "{":
                raise self.error("maps inside a map are not supported")
            else:
                mapping[key] = self.flow_scalar()

            self.skip_ws()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
                self.skip_ws()
                if self.peek() == "}":
                    self.pos += 1
                    return mapping
            elif ch == "}":
                self.pos += 1
                return mapping
            elif not ch:
                raise self.error("unterminated map")
            else:
                raise self.error("expected ',' or '}'")

    def bare_key(self) -> str:
        start = self.pos
        while self.peek() and self.peek() != ":":
            if self.peek() in "{}[],":
                raise self.error("malformed map key")
            self.pos += 1
        key = self.text[start : self.pos].strip()
        if not key:
            raise self.error("empty map key")
        return key

    def flow_scalar(self) -> Scalar:
        if self.peek() in ('"', "'"):
            return self.quoted()
        start = self.pos
        while self.peek() and self.peek() not in _FLOW_END:
            if self.peek() in "[{":
                raise self.error("unexpected bracket in value")
            self.pos += 1
        token = self.text[start : self.pos].strip()
        if not token:
            raise self.error("empty value")
        if ": " in token or token.endswith(":"):
            raise self.error("implicit maps are not supported")
        return self.bare(token)

    def bare(self, token: str) -> Scalar:
        if token[0] in _RESERVED_START:
            raise self.error(f"unsupported construct '{token[0]}'")
        if " #" in token:
            raise self.error("comments are not supported")
        if token in _NULL_TOKENS:
            raise self.error("null values are not supported")
        if token in _BOOL_TOKENS:
            return _BOOL_TOKENS[token]
        if _INT_RE.fullmatch(token):
            try:
                return int(token)
            except ValueError:
                # Longer than the interpreter's int digit limit
                raise self.error("integer is too long") from None
        if _FLOAT_RE.fullmatch(token):
            return float(token)
        return token

    def quoted(self) -> str:
        quote = self.peek()
        self.pos += 1
        out = []
        while True:
            ch = self.peek()
            if not ch:
                raise self.error("unterminated string")
            self.pos += 1

            if quote == "'":
                if ch == "'":
                    if self.peek() == "'":
                        self.pos += 1
                        out.append("'")
                        continue
                    return "".join(out)
                out.append(ch)
                continue

            if ch == '"':
                return "".join(out)
            if ch != "\\":
                out.append(ch)
                continue

            esc = self.peek()
            self.pos += 1
            if esc in _UNESCAPES:
                out.append(_UNESCAPES[esc])
            elif esc in ("x", "u"):
                width = 2 if esc == "x" else 4
                digits = self.text[self.pos : self.pos + width]
                if len(digits) != width or not all(
                    c in "0123456789abcdefABCDEF" for c in digits
                ):
                    raise self.error(f"bad \\{esc} escape")
                out.append(chr(int(digits, 16)))
                self.pos += width
            else:
                raise self.error(f"unknown escape '\\{esc}'")


def serialize(doc: FrontmatterDocument) -> str:
    """Render a document as header + body.

    Fields are emitted one per line in stored order. Values outside the
    supported subset raise ParseError rather than producing a header that
    would read back differently.
    """
    lines = [MARKER]
    for key, value in doc.fields.items():
        if not isinstance(key, str) or not KEY_RE.fullmatch(key):
            raise ParseError(f"unsupported field name: {key!r}")
        lines.append(f"{key}: {format_value(value)}")
    lines.append(MARKER)
    return "\n".join(lines) + "\n" + doc.body


def format_value(value: Value) -> str:
    """Encode one field value."""
    kind = value_kind(value)
    if kind == "scalar":
        return _format_scalar(value)
    if kind == "map":
        return _format_map(value)
    return _format_array(value, allow_maps=True)


def _format_array(items: list, allow_maps: bool) -> str:
    parts = []
    for item in items:
        kind = value_kind(item)
        if kind == "scalar":
            parts.append(_format_scalar(item))
        elif kind == "map" and allow_maps:
            parts.append(_format_map(item))
        elif kind == "map":
            raise ParseError("maps inside a map are not supported")
        else:
            raise ParseError("nested arrays are not supported")
    return "[" + ", ".join(parts) + "]"


def _format_map(mapping: dict) -> str:
    parts = []
    for key, value in mapping.items():
        if not isinstance(key, str):
            raise ParseError(f"map keys must be strings, got {key!r}")
        kind = value_kind(value)
        if kind == "scalar":
            text = _format_scalar(value)
        elif kind == "array":
            text = _format_array(value, allow_maps=False)
        else:
            raise ParseError("maps inside a map are not supported")
        parts.append(f"{_quote(key)}: {text}")
    return "{" + ", ".join(parts) + "}"


def _format_scalar(value: Scalar) -> str:
    # bool before int: bool is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError:
            raise ParseError("cannot encode an integer that long") from None
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ParseError(f"cannot encode non-finite number {value!r}")
        return repr(value)
    return _quote(value)


def _quote(text: str) -> str:
    out = ['"']
    for ch in text:
        code = ord(ch)
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif code < 0x20 or 0x7F <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
        elif ch in "\u2028\u2029\ufeff" or 0xD800 <= code <= 0xDFFF:
            out.append(f"\\u{code:04x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)
