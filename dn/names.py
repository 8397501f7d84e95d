"""Distinguished names (DNs) and the algebra used to place them in a tree.

A DN is an ordered sequence of relative components (RDNs). Index 0 is the
most specific component (the leaf), the last one is closest to the root::

    cn=alpha,ou=groupA,dc=example,dc=com
    ^leaf                        ^root-most

Both types are immutable values; every operation here is pure.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Union

from .errors import MalformedNameError

# descr (keystring) or numericoid, RFC 4512
_ATTRIBUTE_TYPE = re.compile(r"^(?:[A-Za-z][A-Za-z0-9-]*|\d+(?:\.\d+)+)$")
_HEX_DIGITS = "0123456789abcdefABCDEF"
# characters that may follow a backslash literally
_ESCAPABLE = ' "#+,;<=>\\'
# characters escaped when rendering a value
_SPECIAL = '"+,;<>\\'


@dataclass(frozen=True, eq=False)
class Rdn:
    """One relative component of a DN, e.g. ``ou=groupA`` or ``cn=a+uid=b``.

    Equality ignores the order of multi-valued parts and the case of both
    attribute types and values.
    """

    pairs: tuple[tuple[str, str], ...]

    def __post_init__(self) -> None:
        if not self.pairs:
            raise ValueError("An RDN needs at least one attribute=value pair")

    @classmethod
    def of(cls, attribute_type: str, value: str) -> Rdn:
        return cls(((attribute_type, value),))

    @property
    def attribute_type(self) -> str:
        return self.pairs[0][0]

    @property
    def value(self) -> str:
        return self.pairs[0][1]

    def _key(self) -> frozenset[tuple[str, str]]:
        return frozenset((t.lower(), v.casefold()) for t, v in self.pairs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rdn):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        ordered = sorted(self.pairs, key=lambda pair: (pair[0].lower(), pair[1].casefold()))
        return "+".join(f"{t.lower()}={_escape_value(v)}" for t, v in ordered)

    def normalized(self) -> str:
        """Case-folded rendering; equal RDNs render identically."""
        return "+".join(f"{t}={_escape_value(v)}" for t, v in sorted(self._key()))


@dataclass(frozen=True)
class Dn:
    """An ordered, most-specific-first sequence of :class:`Rdn`."""

    rdns: tuple[Rdn, ...] = ()

    def __len__(self) -> int:
        return len(self.rdns)

    def __iter__(self) -> Iterator[Rdn]:
        return iter(self.rdns)

    def __getitem__(self, index: int) -> Rdn:
        return self.rdns[index]

    def __add__(self, other: Dn) -> Dn:
        """``self`` placed below ``other``: ``cn=x`` + ``dc=com`` is ``cn=x,dc=com``."""
        if not isinstance(other, Dn):
            return NotImplemented
        return Dn(self.rdns + other.rdns)

    def __str__(self) -> str:
        return ",".join(str(rdn) for rdn in self.rdns)

    def normalized(self) -> str:
        """Case-folded rendering; equal DNs render identically, whatever their spelling."""
        return ",".join(rdn.normalized() for rdn in self.rdns)

    @property
    def leaf(self) -> Rdn | None:
        return self.rdns[0] if self.rdns else None

    @property
    def parent(self) -> Dn:
        """The DN without its leaf. The parent of the empty DN is the empty DN."""
        return Dn(self.rdns[1:])

    def child(self, rdn: Rdn) -> Dn:
        return Dn((rdn,) + self.rdns)

    def root_first(self) -> tuple[Rdn, ...]:
        return tuple(reversed(self.rdns))

    def ancestors(self) -> Iterator[Dn]:
        """Yield every proper ancestor, from the immediate parent down to the empty DN."""
        for start in range(1, len(self.rdns) + 1):
            yield Dn(self.rdns[start:])

    def is_descendant_of(self, reference: Dn) -> bool:
        return is_descendant_of(self, reference)


NameLike = Union[Dn, str]


def parse(name: str) -> Dn:
    """Parse the RFC 4514 string form of a DN.

    Blank input is the empty DN. Raises :class:`MalformedNameError` when the
    string cannot be split into ``type=value`` components.
    """
    if not isinstance(name, str):
        raise MalformedNameError(repr(name), f"expected a string, got {type(name).__name__}")
    if not name.strip():
        return Dn()
    rdns = []
    for raw_rdn in _split(name, ",;", name):
        pairs = tuple(_parse_pair(raw_pair, name) for raw_pair in _split(raw_rdn, "+", name))
        rdns.append(Rdn(pairs))
    return Dn(tuple(rdns))


def coerce_dn(value: NameLike) -> Dn:
    """Normalize a DN or its string form into a :class:`Dn`."""
    if isinstance(value, Dn):
        return value
    return parse(value)


def is_descendant_of(candidate: Dn, reference: Dn) -> bool:
    """True iff ``candidate`` lies strictly below ``reference``.

    Both names are aligned at their root ends: every component of
    ``reference`` must equal the component of ``candidate`` at the same
    distance from the root, and ``candidate`` must have at least one more
    specific component. A name is not its own descendant.
    """
    if len(reference) >= len(candidate):
        return False
    # root-most components first, so a foreign root fails on the first step
    for mine, theirs in zip(candidate.root_first(), reference.root_first()):
        if mine != theirs:
            return False
    return True


def subtract_common_tail(minuend: Dn, subtrahend: Dn) -> Dn:
    """Drop the longest root-side tail ``minuend`` shares with ``subtrahend``.

    Stops at the first mismatch; ``subtrahend`` need not be consumed.
    ``subtract_common_tail(cn=x,ou=a,dc=c, ou=a,dc=c)`` is ``cn=x``.
    """
    shared = 0
    for mine, theirs in zip(minuend.root_first(), subtrahend.root_first()):
        if mine != theirs:
            break
        shared += 1
    return Dn(minuend.rdns[:len(minuend) - shared])


# ---------------------------------------------------------------------------
# helpers


def _split(text: str, separators: str, source: str) -> list[str]:
    """Split on unescaped separators outside double quotes. Escapes are kept."""
    parts: list[str] = []
    current: list[str] = []
    quoted = False
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            if i + 1 >= len(text):
                raise MalformedNameError(source, "dangling escape at end of name")
            current.append(text[i:i + 2])
            i += 2
            continue
        if ch == '"':
            quoted = not quoted
        elif ch in separators and not quoted:
            parts.append("".join(current))
            current = []
            i += 1
            continue
        current.append(ch)
        i += 1
    if quoted:
        raise MalformedNameError(source, "unterminated quoted value")
    parts.append("".join(current))
    return parts


def _parse_pair(raw: str, source: str) -> tuple[str, str]:
    if not raw.strip():
        raise MalformedNameError(source, "empty component")
    attribute_type, sep, raw_value = raw.partition("=")
    if not sep:
        raise MalformedNameError(source, f"component {raw.strip()!r} has no '='")
    attribute_type = attribute_type.strip()
    if not attribute_type:
        raise MalformedNameError(source, f"component {raw.strip()!r} has an empty attribute type")
    if not _ATTRIBUTE_TYPE.match(attribute_type):
        raise MalformedNameError(source, f"invalid attribute type {attribute_type!r}")
    return attribute_type, _unescape_value(raw_value, source)


def _unescape_value(raw: str, source: str) -> str:
    """Decode escapes and quotes; unescaped surrounding whitespace is dropped."""
    text = raw.lstrip()
    quoted = text.startswith('"')
    if quoted:
        text = text.rstrip()
        if len(text) < 2 or not text.endswith('"'):
            raise MalformedNameError(source, "unterminated quoted value")
        text = text[1:-1]

    buf = bytearray()
    significant = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            pair = text[i + 1:i + 3]
            if len(pair) == 2 and all(c in _HEX_DIGITS for c in pair):
                buf += bytes.fromhex(pair)
                i += 3
            elif pair and pair[0] in _ESCAPABLE:
                buf += pair[0].encode("utf-8")
                i += 2
            else:
                raise MalformedNameError(source, f"invalid escape sequence '\\{pair[:1]}'")
            significant = len(buf)
            continue
        buf += ch.encode("utf-8")
        i += 1
        if quoted or not ch.isspace():
            significant = len(buf)

    try:
        return bytes(buf[:significant]).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedNameError(source, "hex escapes do not form valid UTF-8") from exc


def _escape_value(value: str) -> str:
    out = []
    last = len(value) - 1
    for i, ch in enumerate(value):
        if ch in _SPECIAL or (ch == "#" and i == 0) or (ch == " " and i in (0, last)):
            out.append("\\" + ch)
        elif ch == "\x00" or (ch.isspace() and ch != " "):
            out.append("".join(f"\\{byte:02X}" for byte in ch.encode("utf-8")))
        else:
            out.append(ch)
    return "".join(out)


__all__ = [
    "Dn",
    "NameLike",
    "Rdn",
    "coerce_dn",
    "is_descendant_of",
    "parse",
    "subtract_common_tail",
]
