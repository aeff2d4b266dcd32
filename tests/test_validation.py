import pytest

from fxconfig.validation import (
    OSDirectoryChecker,
    OSFileChecker,
    PolicyDSLChecker,
    ValidationError,
    new_validation_context,
)


@pytest.mark.parametrize(
    "expression, msp_ids",
    [
        ("OR('Org1MSP.member')", ["Org1MSP"]),
        ("AND('Org1MSP.member', 'Org2MSP.member')", ["Org1MSP", "Org2MSP"]),
    ],
)
def test_policy_checker_valid(expression, msp_ids):
    policy = PolicyDSLChecker().check(expression)
    assert [p.msp_id for p in policy.identities] == msp_ids


@pytest.mark.parametrize("expression", ["NOT_A_POLICY", ""])
def test_policy_checker_invalid(expression):
    with pytest.raises(ValidationError, match="invalid policy expression"):
        PolicyDSLChecker().check(expression)


@pytest.fixture
def tmp_file(tmp_path):
    path = tmp_path / "key.pem"
    path.write_bytes(b"data")
    return path


def test_file_checker_valid(tmp_file):
    assert OSFileChecker().exists(str(tmp_file)) == str(tmp_file)


@pytest.mark.parametrize(
    "make_path, message",
    [
        (lambda d: "", "path must not be empty"),
        (lambda d: str(d / "missing.pem"), "file does not exist"),
        (lambda d: str(d), "expected file but got directory"),
        (lambda d: "../../etc/passwd", "path traversal not allowed"),
    ],
)
def test_file_checker_invalid(tmp_path, make_path, message):
    with pytest.raises(ValidationError, match=message):
        OSFileChecker().exists(make_path(tmp_path))


def test_directory_checker_valid(tmp_path):
    assert OSDirectoryChecker().exists(str(tmp_path)) == str(tmp_path)


@pytest.mark.parametrize(
    "make_path, message",
    [
        (lambda d, f: "", "path must not be empty"),
        (lambda d, f: str(d / "missing"), "directory does not exist"),
        (lambda d, f: str(f), "not a directory"),
        (lambda d, f: "../../etc", "path traversal not allowed"),
    ],
)
def test_directory_checker_invalid(tmp_path, tmp_file, make_path, message):
    with pytest.raises(ValidationError, match=message):
        OSDirectoryChecker().exists(make_path(tmp_path, tmp_file))


def test_new_validation_context_uses_os_checkers(tmp_path, tmp_file):
    ctx = new_validation_context()
    assert ctx.file_checker.exists(str(tmp_file)) == str(tmp_file)
    assert ctx.directory_checker.exists(str(tmp_path)) == str(tmp_path)
    with pytest.raises(ValidationError):
        ctx.policy_checker.check("NOT_A_POLICY")