"""Transaction and policy messages with their binary encodings."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field


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


def _bytes_field(number: int, data: bytes) -> bytes:
    if not data:
        return b""
    return _varint(number << 3 | 2) + _varint(len(data)) + data


def _message_field(number: int, data: bytes) -> bytes:
    return _varint(number << 3 | 2) + _varint(len(data)) + data


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7


def _der_length(n: int) -> bytes:
    if n < 0x80:
        return bytes([n])
    raw = n.to_bytes((n.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(raw)]) + raw


def _der(tag: int, body: bytes) -> bytes:
    return bytes([tag]) + _der_length(len(body)) + body


def _der_int(value: int) -> bytes:
    return _der(0x02, value.to_bytes(max(1, (value.bit_length() + 8) // 8), "big", signed=True))


@dataclass
class Identity:
    """A signer's identity: its MSP ID and certificate or certificate ID."""

    msp_id: str = ""
    certificate: bytes = b""
    certificate_id: str = ""

    def to_bytes(self) -> bytes:
        """Serialize in protobuf wire format."""
        return (
            _bytes_field(1, self.msp_id.encode())
            + _bytes_field(2, self.certificate)
            + _bytes_field(3, self.certificate_id.encode())
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> Identity:
        """Parse protobuf wire format; raise ValueError if malformed."""
        identity = cls()
        pos = 0
        while pos < len(data):
            tag, pos = _read_varint(data, pos)
            number, wire = tag >> 3, tag & 7
            if wire == 0:
                _, pos = _read_varint(data, pos)
            elif wire == 2:
                length, pos = _read_varint(data, pos)
                if pos + length > len(data):
                    raise ValueError("truncated field")
                chunk = data[pos : pos + length]
                pos += length
                if number == 1:
                    identity.msp_id = chunk.decode()
                elif number == 2:
                    identity.certificate = chunk
                elif number == 3:
                    identity.certificate_id = chunk.decode()
            elif wire in (1, 5):
                pos += 8 if wire == 1 else 4
                if pos > len(data):
                    raise ValueError("truncated field")
            else:
                raise ValueError(f"unsupported wire type {wire}")
        return identity


@dataclass
class ReadWrite:
    """A key write, optionally bound to the version it updates."""

    key: bytes = b""
    value: bytes = b""
    version: int | None = None


@dataclass
class TxNamespace:
    """The reads and writes of a transaction within one namespace."""

    ns_id: str = ""
    ns_version: int = 0
    read_writes: list[ReadWrite] = field(default_factory=list)

    def asn1_marshal(self, tx_id: str) -> bytes:
        """DER-encode this namespace together with the transaction ID, as signed by endorsers."""
        writes = b"".join(
            _der(
                0x30,
                _der(0x04, rw.key)
                + _der(0x04, rw.value)
                + (_der_int(rw.version) if rw.version is not None else b""),
            )
            for rw in self.read_writes
        )
        return _der(
            0x30,
            _der(0x0C, tx_id.encode())
            + _der(0x0C, self.ns_id.encode())
            + _der_int(self.ns_version)
            + _der(0x30, writes),
        )


@dataclass
class EndorsementWithIdentity:
    """A signature and the identity that made it."""

    endorsement: bytes = b""
    identity: Identity | None = None


@dataclass
class Endorsements:
    """The endorsements collected for one namespace."""

    endorsements_with_identity: list[EndorsementWithIdentity] = field(default_factory=list)


@dataclass
class Tx:
    """A transaction: namespaces and, per namespace, their endorsements."""

    namespaces: list[TxNamespace] = field(default_factory=list)
    endorsements: list[Endorsements | None] = field(default_factory=list)

    def clone(self) -> Tx:
        """Return a deep copy."""
        return copy.deepcopy(self)


@dataclass
class ThresholdRule:
    """A threshold signature scheme and its public key."""

    scheme: str = ""
    public_key: bytes = b""


@dataclass
class NamespacePolicy:
    """A namespace endorsement policy: either a threshold rule or a serialized MSP rule."""

    threshold_rule: ThresholdRule | None = None
    msp_rule: bytes | None = None

    def to_bytes(self) -> bytes:
        """Serialize in protobuf wire format."""
        out = b""
        if self.threshold_rule is not None:
            rule = _bytes_field(1, self.threshold_rule.scheme.encode()) + _bytes_field(
                2, self.threshold_rule.public_key
            )
            out += _message_field(1, rule)
        if self.msp_rule is not None:
            out += _message_field(2, self.msp_rule)
        return out