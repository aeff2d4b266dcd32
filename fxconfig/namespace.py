"""Building transactions that create or update namespace policies."""

from __future__ import annotations

from .protos import NamespacePolicy, ReadWrite, Tx, TxNamespace

META_NAMESPACE_ID = "_meta"


def create_namespaces_tx(ns_policy: NamespacePolicy, ns_id: str, ns_version: int) -> Tx:
    """Write ``ns_policy`` for ``ns_id`` to the meta-namespace.

    Version -1 creates the namespace; a version of 0 or more updates that version.
    """
    rw = ReadWrite(key=ns_id.encode(), value=ns_policy.to_bytes())
    if ns_version >= 0:
        rw.version = ns_version
    return Tx(namespaces=[TxNamespace(ns_id=META_NAMESPACE_ID, ns_version=0, read_writes=[rw])])