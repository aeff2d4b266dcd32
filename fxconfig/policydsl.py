"""Parser for signature policy expressions such as ``AND('Org1MSP.member', 'Org2MSP.admin')``.

Supported gates are ``AND``, ``OR`` and ``OutOf`` (in the spellings ``And``/``and``/``AND``,
``Or``/``or``/``OR`` and ``OutOf``/``outof``/``OUTOF``). Principals are quoted strings of
the form ``'<MSP ID>.<role>'`` where the role is one of admin, member, client, peer or orderer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Union


class PolicyParseError(ValueError):
    """Raised when a policy expression cannot be parsed."""


_ROLES = {"member": 0, "admin": 1, "client": 2, "peer": 3, "orderer": 4}
_PRINCIPAL_RE = re.compile(r"^([A-Za-z0-9.-]+)\.(admin|member|client|peer|orderer)$")

_GATES = {
    **dict.fromkeys(("And", "and", "AND"), "and"),
    **dict.fromkeys(("Or", "or", "OR"), "or"),
    **dict.fromkeys(("OutOf", "outof", "OUTOF"), "outof"),
}

_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<num>\d+)
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
      | '(?P<sq>[^']*)'
      | "(?P<dq>[^"]*)"
      | (?P<punct>[(),])
    )""",
    re.VERBOSE,
)


def _varint(value: int) -> bytes:
    if value < 0:
        value += 1 << 64
    out = bytearray()
    while True:
        low = value & 0x7F
        value >>= 7
        if value:
            out.append(low | 0x80)
        else:
            out.append(low)
            return bytes(out)


def _int_field(number: int, value: int, *, always: bool = False) -> bytes:
    if value == 0 and not always:
        return b""
    return _varint(number << 3) + _varint(value)


def _bytes_field(number: int, data: bytes) -> bytes:
    return _varint(number << 3 | 2) + _varint(len(data)) + data


@dataclass(frozen=True)
class Principal:
    """An MSP role principal: an organisation's MSP ID and a role within it."""

    msp_id: str
    role: str

    def _encode(self) -> bytes:
        role = _bytes_field(1, self.msp_id.encode()) + _int_field(2, _ROLES[self.role])
        # principal_classification ROLE is the zero value and therefore omitted
        return _bytes_field(2, role)


@dataclass(frozen=True)
class _SignedBy:
    index: int


@dataclass(frozen=True)
class _NOutOf:
    n: int
    rules: tuple[_Rule, ...]


_Rule = Union[_SignedBy, _NOutOf]


def _encode_rule(rule: _Rule) -> bytes:
    if isinstance(rule, _SignedBy):
        return _int_field(1, rule.index, always=True)
    body = _int_field(1, rule.n) + b"".join(_bytes_field(2, _encode_rule(r)) for r in rule.rules)
    return _bytes_field(2, body)


@dataclass(frozen=True)
class SignaturePolicy:
    """A parsed policy: a rule tree over the principals listed in ``identities``."""

    rule: _Rule
    identities: tuple[Principal, ...]
    version: int = 0

    def to_bytes(self) -> bytes:
        """Serialize as a protobuf ``SignaturePolicyEnvelope``."""
        return (
            _int_field(1, self.version)
            + _bytes_field(2, _encode_rule(self.rule))
            + b"".join(_bytes_field(3, p._encode()) for p in self.identities)
        )


def _tokenize(expression: str) -> Iterator[tuple[str, str]]:
    pos = 0
    while pos < len(expression):
        if expression[pos:].strip() == "":
            return
        match = _TOKEN_RE.match(expression, pos)
        if match is None:
            raise PolicyParseError(f"unexpected character at position {pos} in {expression!r}")
        kind = match.lastgroup
        value = match.group(kind)
        if kind in ("sq", "dq"):
            kind = "str"
        yield kind, value
        pos = match.end()


class _Parser:
    def __init__(self, expression: str) -> None:
        self._tokens = list(_tokenize(expression))
        self._pos = 0
        self.principals: list[Principal] = []

    def _peek(self) -> tuple[str, str] | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _next(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            raise PolicyParseError("unexpected end of policy expression")
        self._pos += 1
        return token

    def _expect(self, punct: str) -> None:
        kind, value = self._next()
        if kind != "punct" or value != punct:
            raise PolicyParseError(f"expected {punct!r}, got {value!r}")

    def parse(self) -> SignaturePolicy:
        if not self._tokens:
            raise PolicyParseError("empty policy expression")
        rule = self._gate()
        if self._peek() is not None:
            raise PolicyParseError(f"unexpected trailing input {self._peek()[1]!r}")
        return SignaturePolicy(rule=rule, identities=tuple(self.principals))

    def _gate(self) -> _Rule:
        kind, value = self._next()
        if kind != "name":
            raise PolicyParseError(f"expected a gate, got {value!r}")
        gate = _GATES.get(value)
        if gate is None:
            raise PolicyParseError(f"unknown gate {value!r}")
        self._expect("(")
        args = [self._arg()]
        while self._peek() == ("punct", ","):
            self._next()
            args.append(self._arg())
        self._expect(")")
        return self._build(gate, args)

    def _arg(self) -> object:
        token = self._peek()
        if token is not None and token[0] == "name":
            return self._gate()
        kind, value = self._next()
        if kind == "str":
            return value
        if kind == "num":
            return int(value)
        raise PolicyParseError(f"unexpected {value!r}")

    def _to_rule(self, arg: object) -> _Rule:
        if isinstance(arg, (_SignedBy, _NOutOf)):
            return arg
        if isinstance(arg, str):
            match = _PRINCIPAL_RE.match(arg)
            if match is None:
                raise PolicyParseError(f"invalid principal {arg!r}")
            self.principals.append(Principal(msp_id=match.group(1), role=match.group(2)))
            return _SignedBy(index=len(self.principals) - 1)
        raise PolicyParseError(f"unexpected argument {arg!r}")

    def _build(self, gate: str, args: list[object]) -> _Rule:
        if gate == "outof":
            if len(args) < 2:
                raise PolicyParseError("OutOf requires a count and at least one rule")
            count, *rest = args
            if isinstance(count, str) and count.isdigit():
                count = int(count)
            if not isinstance(count, int) or isinstance(count, bool):
                raise PolicyParseError(f"invalid OutOf count {count!r}")
            return _NOutOf(n=count, rules=tuple(self._to_rule(a) for a in rest))
        rules = tuple(self._to_rule(a) for a in args)
        return _NOutOf(n=len(rules) if gate == "and" else 1, rules=rules)


def from_string(expression: str) -> SignaturePolicy:
    """Parse a policy expression into a :class:`SignaturePolicy`."""
    return _Parser(expression).parse()