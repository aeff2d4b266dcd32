"""Merging separately endorsed copies of one transaction."""

from __future__ import annotations

import copy
from typing import Sequence

from .protos import Endorsements, EndorsementWithIdentity, Tx


class MergeError(ValueError):
    """Raised when transactions cannot be merged."""


def _msp_id(endorsement: EndorsementWithIdentity) -> str:
    return endorsement.identity.msp_id if endorsement.identity is not None else ""


def _validate(txs: Sequence[Tx]) -> None:
    base = txs[0]
    for i, tx in enumerate(txs):
        if len(tx.namespaces) != len(base.namespaces):
            raise MergeError(f"transaction {i}: namespace count mismatch")
        for ns_idx, (base_ns, ns) in enumerate(zip(base.namespaces, tx.namespaces)):
            if base_ns != ns:
                raise MergeError(f"transaction {i}: namespace {ns_idx} content mismatch")
        for ns_idx, eset in enumerate(tx.endorsements):
            if eset is None or not eset.endorsements_with_identity:
                raise MergeError(
                    f"transaction {i}: namespace {ns_idx} requires at least one endorsement"
                )


def _merge_endorsements(txs: Sequence[Tx]) -> list[Endorsements]:
    count = len(txs[0].namespaces)
    merged = [Endorsements() for _ in range(count)]
    seen: list[set[str]] = [set() for _ in range(count)]
    for tx in txs:
        for ns_idx, eset in enumerate(tx.endorsements[:count]):
            for endorsement in eset.endorsements_with_identity:
                key = _msp_id(endorsement)
                if key in seen[ns_idx]:
                    continue
                seen[ns_idx].add(key)
                merged[ns_idx].endorsements_with_identity.append(copy.deepcopy(endorsement))
    return merged


def merge(txs: Sequence[Tx]) -> Tx:
    """Combine endorsements of identical transactions, one per MSP ID, sorted by MSP ID."""
    if len(txs) < 2:
        raise MergeError("at least two transactions required for merge")
    _validate(txs)
    merged = txs[0].clone()
    merged.endorsements = _merge_endorsements(txs)
    for eset in merged.endorsements:
        eset.endorsements_with_identity.sort(key=_msp_id)
    return merged