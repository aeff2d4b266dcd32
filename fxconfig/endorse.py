"""Endorsing transactions and generating transaction IDs."""

from __future__ import annotations

import hashlib
import secrets
from typing import BinaryIO, Protocol

from .protos import Endorsements, EndorsementWithIdentity, Identity, Tx

_NONCE_SIZE = 24


class EndorsementError(RuntimeError):
    """Raised when a transaction cannot be endorsed."""


class SigningIdentity(Protocol):
    """An identity able to sign messages and serialize itself."""

    def sign(self, msg: bytes) -> bytes: ...

    def serialize(self) -> bytes: ...


def _identity(signer: SigningIdentity) -> Identity:
    try:
        return Identity.from_bytes(signer.serialize())
    except ValueError as err:
        raise EndorsementError(f"invalid signer identity: {err}") from err


def endorse(signer: SigningIdentity, tx_id: str, tx: Tx | None) -> Tx:
    """Return a copy of ``tx`` with the signer's endorsement added for every namespace."""
    if tx is None:
        raise EndorsementError("nil transaction")
    tx = tx.clone()
    if not tx.endorsements:
        tx.endorsements = [None] * len(tx.namespaces)
    if len(tx.endorsements) < len(tx.namespaces):
        raise EndorsementError("fewer endorsement sets than namespaces")

    identity = _identity(signer)
    for index, namespace in enumerate(tx.namespaces):
        msg = namespace.asn1_marshal(tx_id)
        try:
            signature = signer.sign(msg)
        except Exception as err:
            raise EndorsementError(f"failed signing tx: {err}") from err
        if tx.endorsements[index] is None:
            tx.endorsements[index] = Endorsements()
        tx.endorsements[index].endorsements_with_identity.append(
            EndorsementWithIdentity(endorsement=signature, identity=identity)
        )
    return tx


def read_nonce(source: BinaryIO | None = None) -> bytes:
    """Read a 24-byte nonce from ``source``, or from a secure random source."""
    if source is None:
        return secrets.token_bytes(_NONCE_SIZE)
    try:
        value = source.read(_NONCE_SIZE)
    except OSError as err:
        raise EndorsementError(f"error while creating nonce: {err}") from err
    if len(value) != _NONCE_SIZE:
        raise EndorsementError(
            f"cannot read enough bytes for nonce actual: {len(value)} wanted: {_NONCE_SIZE}"
        )
    return value


def generate_tx_id() -> str:
    """Return the hex SHA-256 of a random nonce."""
    return hashlib.sha256(read_nonce()).hexdigest()