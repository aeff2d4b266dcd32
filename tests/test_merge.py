import pytest

from fxconfig.merge import MergeError, merge
from fxconfig.protos import (
    Endorsements,
    EndorsementWithIdentity,
    Identity,
    ReadWrite,
    Tx,
    TxNamespace,
)


def make_tx(namespaces, endorsements):
    tx = Tx()
    for ns in namespaces:
        tx.namespaces.append(TxNamespace(ns_id=ns))
        tx.endorsements.append(
            Endorsements(
                [
                    EndorsementWithIdentity(("sig-" + m).encode(), Identity(m))
                    for m in endorsements.get(ns, [])
                ]
            )
        )
    return tx


def ids(result, ns=0):
    return [e.identity.msp_id for e in result.endorsements[ns].endorsements_with_identity]


@pytest.mark.parametrize("txs", [[], [make_tx(["ns1"], {"ns1": ["Org1MSP"]})]])
def test_less_than_two(txs):
    with pytest.raises(MergeError, match="at least two transactions required"):
        merge(txs)


def test_content_mismatch():
    with pytest.raises(MergeError, match="content mismatch"):
        merge([make_tx(["ns1"], {"ns1": ["Org1MSP"]}), make_tx(["ns2"], {"ns2": ["Org2MSP"]})])


def test_count_mismatch():
    with pytest.raises(MergeError, match="namespace count mismatch"):
        merge([make_tx(["ns1"], {"ns1": ["A"]}), make_tx(["ns1", "ns2"], {"ns1": ["B"], "ns2": ["B"]})])


def test_empty_endorsements():
    with pytest.raises(MergeError, match="requires at least one endorsement"):
        merge([make_tx(["ns1"], {"ns1": ["Org1MSP"]}), make_tx(["ns1"], {"ns1": []})])


def test_two_and_three():
    r = merge([make_tx(["ns1"], {"ns1": ["Org1MSP"]}), make_tx(["ns1"], {"ns1": ["Org2MSP"]})])
    assert len(r.endorsements) == 1
    assert ids(r) == ["Org1MSP", "Org2MSP"]
    r = merge([make_tx(["ns1"], {"ns1": [m]}) for m in ["Org1MSP", "Org2MSP", "Org3MSP"]])
    assert ids(r) == ["Org1MSP", "Org2MSP", "Org3MSP"]


def test_dedup_and_sort():
    r = merge([make_tx(["ns1"], {"ns1": ["Org1MSP"]}), make_tx(["ns1"], {"ns1": ["Org1MSP"]})])
    assert ids(r) == ["Org1MSP"]
    r = merge([make_tx(["ns1"], {"ns1": [m]}) for m in ["Org3MSP", "Org1MSP", "Org2MSP"]])
    assert ids(r) == ["Org1MSP", "Org2MSP", "Org3MSP"]


def test_multiple_namespaces():
    r = merge(
        [
            make_tx(["ns1", "ns2"], {"ns1": ["Org1MSP"], "ns2": ["Org1MSP"]}),
            make_tx(["ns1", "ns2"], {"ns1": ["Org2MSP"], "ns2": ["Org3MSP"]}),
        ]
    )
    assert ids(r, 0) == ["Org1MSP", "Org2MSP"]
    assert ids(r, 1) == ["Org1MSP", "Org3MSP"]
    r = merge(
        [
            make_tx(["ns1", "ns2", "ns3"], {"ns1": ["Org1MSP"], "ns2": ["Org2MSP"], "ns3": ["Org3MSP"]}),
            make_tx(["ns1", "ns2", "ns3"], {"ns1": ["Org4MSP"], "ns2": ["Org5MSP"], "ns3": ["Org6MSP"]}),
        ]
    )
    assert [len(e.endorsements_with_identity) for e in r.endorsements] == [2, 2, 2]
    r = merge([make_tx(["ns1", "ns2"], {"ns1": ["Org1MSP"], "ns2": ["Org1MSP"]})] * 2)
    assert ids(r, 0) == ["Org1MSP"] and ids(r, 1) == ["Org1MSP"]


def test_preserves_content():
    tx1 = make_tx(["ns1"], {"ns1": ["Org1MSP"]})
    tx2 = make_tx(["ns1"], {"ns1": ["Org2MSP"]})
    for tx in (tx1, tx2):
        tx.namespaces[0].read_writes = [ReadWrite(key=b"key1", value=b"value1")]
    r = merge([tx1, tx2])
    assert r.namespaces[0].ns_id == "ns1"
    assert r.namespaces[0].read_writes[0].key == b"key1"
    assert len(r.endorsements[0].endorsements_with_identity) == 2
    assert len(tx1.endorsements[0].endorsements_with_identity) == 1