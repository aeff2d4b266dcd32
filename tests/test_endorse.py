import io

import pytest

from fxconfig.endorse import EndorsementError, endorse, generate_tx_id, read_nonce
from fxconfig.protos import Endorsements, EndorsementWithIdentity, Identity, Tx, TxNamespace


class MockSigner:
    def __init__(self, msp_id, fail=False):
        self.msp_id = msp_id
        self.fail = fail
        self.messages = []

    def sign(self, msg):
        if self.fail:
            raise RuntimeError("signing failed")
        self.messages.append(msg)
        return b"mock-signature"

    def serialize(self):
        return Identity(msp_id=self.msp_id).to_bytes()


@pytest.mark.parametrize(
    "namespaces,tx_id",
    [
        ([TxNamespace("test-ns", 0)], "tx-123"),
        ([TxNamespace("ns1", 0), TxNamespace("ns2", 1), TxNamespace("ns3", 2)], "tx-456"),
    ],
)
def test_endorse_success(namespaces, tx_id):
    tx = Tx(namespaces=namespaces)
    signer = MockSigner("Org1MSP")
    result = endorse(signer, tx_id, tx)
    assert len(result.endorsements) == len(namespaces)
    for ns, eset in zip(namespaces, result.endorsements):
        assert len(eset.endorsements_with_identity) == 1
        e = eset.endorsements_with_identity[0]
        assert e.endorsement == b"mock-signature"
        assert e.identity.msp_id == "Org1MSP"
    assert signer.messages == [ns.asn1_marshal(tx_id) for ns in namespaces]
    assert tx.endorsements == []


def test_endorse_signing_failure():
    tx = Tx(namespaces=[TxNamespace("test-ns", 0)])
    with pytest.raises(EndorsementError, match="failed signing tx"):
        endorse(MockSigner("Org1MSP", fail=True), "tx-789", tx)


def test_endorse_nil_transaction():
    with pytest.raises(EndorsementError, match="nil transaction"):
        endorse(MockSigner("Org1MSP"), "tx", None)


def test_endorse_appends_to_existing():
    existing = EndorsementWithIdentity(b"old", Identity("Org2MSP"))
    tx = Tx(namespaces=[TxNamespace("ns")], endorsements=[Endorsements([existing])])
    result = endorse(MockSigner("Org1MSP"), "tx", tx)
    ids = [e.identity.msp_id for e in result.endorsements[0].endorsements_with_identity]
    assert ids == ["Org2MSP", "Org1MSP"]


def test_generate_tx_id_hex_and_unique():
    a = generate_tx_id()
    assert len(a) == 64
    bytes.fromhex(a)
    assert a != generate_tx_id()


def test_read_nonce_from_source():
    data = bytes(range(24))
    assert read_nonce(io.BytesIO(data + b"extra")) == data
    assert len(read_nonce()) == 24


def test_read_nonce_short_source():
    with pytest.raises(EndorsementError, match="cannot read enough bytes"):
        read_nonce(io.BytesIO(b"short"))