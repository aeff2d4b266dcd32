"""Building namespace policies from policy expressions or public key files."""

from __future__ import annotations

import base64
import binascii
import os
import re

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .policydsl import PolicyParseError, from_string
from .protos import NamespacePolicy, ThresholdRule


class PolicyError(ValueError):
    """Raised when a policy cannot be built."""


_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^-\r\n]+)-----\r?\n(.*?)-----END \1-----", re.DOTALL
)


def create_msp_policy(policy: str) -> NamespacePolicy:
    """Build an MSP-rule policy from an expression like ``OR('Org1MSP.member')``."""
    try:
        parsed = from_string(policy)
    except PolicyParseError as err:
        raise PolicyError(str(err)) from err
    return NamespacePolicy(msp_rule=parsed.to_bytes())


def create_threshold_policy(path: str | os.PathLike) -> NamespacePolicy:
    """Build an ECDSA threshold policy from a PEM file holding a key or certificate."""
    with open(path, "rb") as fh:
        data = fh.read()
    return NamespacePolicy(
        threshold_rule=ThresholdRule(scheme="ECDSA", public_key=get_pub_key_from_pem_data(data))
    )


def _ec_key(der: bytes) -> ec.EllipticCurvePublicKey | None:
    try:
        cert = x509.load_der_x509_certificate(der)
    except ValueError:
        try:
            key = serialization.load_der_public_key(der)
        except (ValueError, TypeError):
            return None
        return key if isinstance(key, ec.EllipticCurvePublicKey) else None
    key = cert.public_key()
    return key if isinstance(key, ec.EllipticCurvePublicKey) else None


def get_pub_key_from_pem_data(pem_content: bytes) -> bytes:
    """Return the first ECDSA public key in the PEM data, re-encoded as a PUBLIC KEY block."""
    for match in _PEM_BLOCK.finditer(pem_content):
        body = b"".join(line for line in match.group(2).split() if b":" not in line)
        try:
            der = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            continue
        key = _ec_key(der)
        if key is not None:
            return key.public_bytes(
                serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
            )
    raise PolicyError("no ECDSA public key in pem file")