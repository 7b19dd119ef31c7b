import base64
import json

import pytest

from core.auth import TokenValidator, authorize
from core.exceptions import AuthFailure, TokenExpired

from conftest import NOW, SECRET, make_token


def _b64(obj) -> str:
    raw = json.dumps(obj, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def test_validator_accepts_valid_token(validator):
    token = make_token(validator, "flush-dns-macos")

    claims = validator.validate(token)

    assert claims.action_id == "flush-dns-macos"
    assert claims.approval_id == "approval-1"
    assert claims.scope == "both"
    assert claims.iat == NOW
    assert claims.exp == NOW + 600
    assert claims.subject == "chat-1"


def test_validator_accepts_camel_case_claims(validator):
    token = validator.issue({
        "actionId": "flush-dns-macos",
        "approvalId": "approval-9",
        "userId": "user-7",
        "scope": "execute",
    })

    claims = validator.validate(token)

    assert claims.action_id == "flush-dns-macos"
    assert claims.approval_id == "approval-9"
    assert claims.subject == "user-7"


def test_subject_falls_back_to_anonymous(validator):
    token = validator.issue({"action_id": "a", "approval_id": "b"})

    assert validator.validate(token).subject == "anonymous"


def test_expiry_boundary_exp_equal_now_is_accepted(validator, clock):
    token = make_token(validator, exp=NOW)

    claims = validator.validate(token)

    assert claims.exp == clock["now"]


def test_expiry_one_second_past_is_rejected(validator):
    token = make_token(validator, exp=NOW - 1)

    with pytest.raises(TokenExpired) as excinfo:
        validator.validate(token)

    assert excinfo.value.exp == NOW - 1
    assert excinfo.value.now == NOW


def test_token_expires_as_clock_advances(validator, clock):
    token = make_token(validator)
    clock["now"] = NOW + 600
    validator.validate(token)

    clock["now"] = NOW + 601
    with pytest.raises(TokenExpired):
        validator.validate(token)


def test_validator_rejects_bad_signature(validator):
    header, payload, signature = make_token(validator).split(".")
    flipped = ("B" if signature[0] != "B" else "C") + signature[1:]
    tampered = f"{header}.{payload}.{flipped}"

    with pytest.raises(AuthFailure):
        validator.validate(tampered)


def test_validator_rejects_token_signed_with_other_secret(validator):
    other = TokenValidator("another-secret", clock=lambda: NOW)
    token = make_token(other)

    with pytest.raises(AuthFailure) as excinfo:
        validator.validate(token)

    assert excinfo.value.reason == "invalid signature"


def test_validator_rejects_other_algorithm(validator):
    hs512 = TokenValidator(SECRET, "HS512", clock=lambda: NOW)
    token = make_token(hs512)

    with pytest.raises(AuthFailure) as excinfo:
        validator.validate(token)

    assert excinfo.value.reason == "unsupported algorithm"


def test_validator_rejects_alg_none(validator):
    payload = {"action_id": "a", "approval_id": "b", "scope": "both", "iat": NOW, "exp": NOW + 60}
    token = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(payload)}."

    with pytest.raises(AuthFailure):
        validator.validate(token)


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "!!!.???.###"])
def test_validator_rejects_malformed_tokens(validator, token):
    with pytest.raises(AuthFailure):
        validator.validate(token)


def test_validator_rejects_missing_claims(validator):
    token = validator.issue({"approval_id": "b"})

    with pytest.raises(AuthFailure) as excinfo:
        validator.validate(token)

    assert "action_id" in excinfo.value.reason


def test_expired_is_not_an_auth_failure(validator):
    token = make_token(validator, exp=NOW - 100)

    with pytest.raises(TokenExpired) as excinfo:
        validator.validate(token)

    assert not isinstance(excinfo.value, AuthFailure)


def test_hs384_round_trip():
    validator = TokenValidator(SECRET, "HS384", clock=lambda: NOW)
    claims = validator.validate(make_token(validator))
    assert claims.action_id == "echo-action"


def test_unknown_algorithm_is_a_configuration_error():
    with pytest.raises(ValueError):
        TokenValidator(SECRET, "RS256")


def test_authorize_ignores_binding_by_default(validator):
    token = make_token(validator, "some-other-action", scope="report")

    claims = authorize(validator, token, "echo-action")

    assert claims.action_id == "some-other-action"


def test_authorize_enforces_action_binding(validator):
    token = make_token(validator, "some-other-action")

    with pytest.raises(AuthFailure) as excinfo:
        authorize(validator, token, "echo-action", enforce_binding=True)

    assert "echo-action" in excinfo.value.reason


def test_authorize_enforces_scope_when_binding(validator):
    token = make_token(validator, "echo-action", scope="report")

    with pytest.raises(AuthFailure):
        authorize(validator, token, "echo-action", enforce_binding=True)

    ok = make_token(validator, "echo-action", scope="execute")
    assert authorize(validator, ok, "echo-action", enforce_binding=True).scope == "execute"
