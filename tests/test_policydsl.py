import pytest

from fxconfig.policydsl import Principal, PolicyParseError, from_string


def test_single_member_wire_bytes():
    policy = from_string("OR('Org1MSP.member')")
    expected = b"\x12\x08\x12\x06\x08\x01\x12\x02\x08\x00\x1a\x0b\x12\x09\x0a\x07Org1MSP"
    assert policy.to_bytes() == expected


def test_and_requires_all_principals():
    policy = from_string("AND('Org1MSP.member', 'Org2MSP.member')")
    assert policy.identities == (Principal("Org1MSP", "member"), Principal("Org2MSP", "member"))
    assert policy.rule.n == len(policy.rule.rules) == len(policy.identities)
    assert [r.index for r in policy.rule.rules] == list(range(len(policy.identities)))


def test_or_requires_one():
    policy = from_string("OR('Org1MSP.member', 'Org2MSP.admin')")
    assert policy.rule.n == 1
    assert policy.identities[1] == Principal("Org2MSP", "admin")


def test_out_of():
    policy = from_string("OutOf(2, 'Org1MSP.member', 'Org2MSP.member', 'Org3MSP.member')")
    assert policy.rule.n == 2
    assert [r.index for r in policy.rule.rules] == list(range(len(policy.identities)))
    assert [p.msp_id for p in policy.identities] == ["Org1MSP", "Org2MSP", "Org3MSP"]


def test_out_of_count_as_string():
    assert from_string("OutOf('2', 'A.member', 'B.member')") == from_string(
        "OutOf(2, 'A.member', 'B.member')"
    )


@pytest.mark.parametrize("gate", ["And", "and", "AND"])
def test_gate_spellings(gate):
    assert from_string(f"{gate}('A.member', 'B.peer')") == from_string("AND('A.member', 'B.peer')")


def test_double_quotes_accepted():
    assert from_string('OR("Org1MSP.client")') == from_string("OR('Org1MSP.client')")


def test_nested_gates_register_inner_principals_first():
    policy = from_string("AND('A.member', OR('B.admin', 'C.peer'))")
    assert [p.msp_id for p in policy.identities] == ["B", "C", "A"]
    inner = policy.rule.rules[0]
    assert inner.n == 1
    assert policy.rule.rules[1].index == policy.identities.index(Principal("A", "member"))


def test_msp_id_with_dots():
    policy = from_string("OR('org.example.orderer')")
    assert policy.identities == (Principal("org.example", "orderer"),)


def test_to_bytes_contains_msp_ids_and_differs_by_role():
    member = from_string("OR('Org1MSP.member')").to_bytes()
    admin = from_string("OR('Org1MSP.admin')").to_bytes()
    assert b"Org1MSP" in member and b"Org1MSP" in admin
    assert member != admin


@pytest.mark.parametrize(
    "expression",
    [
        "",
        "   ",
        "NOT_A_POLICY",
        "AND()",
        "AND('Org1MSP.member'",
        "XOR('Org1MSP.member')",
        "AND('Org1MSP.nobody')",
        "OutOf('x', 'Org1MSP.member')",
        "OutOf(1)",
        "'Org1MSP.member'",
        "AND('Org1MSP.member') extra",
        "AND(1, 'Org1MSP.member')",
        "AND('Org1MSP.member' ; )",
    ],
)
def test_invalid_expressions(expression):
    with pytest.raises(PolicyParseError):
        from_string(expression)