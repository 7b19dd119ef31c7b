"""
Authorization gate for scoped automation tokens.

Tokens are HMAC-signed JWTs minted by the remote authority for a single
action/approval pair. Validation is a pure function of the token, the
configured secret and algorithm, and the clock.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any, Callable, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from core.exceptions import AuthFailure, TokenExpired

_DIGESTS = {
    "HS256": hashlib.sha256,
    "HS384": hashlib.sha384,
    "HS512": hashlib.sha512,
}

EXECUTE_SCOPES = ("execute", "both")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("ascii"))


def _b64url_encode(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


class AuthorizationClaims(BaseModel):
    """Claims carried by a scoped automation token."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action_id: str = Field(validation_alias=AliasChoices("action_id", "actionId"))
    approval_id: str = Field(validation_alias=AliasChoices("approval_id", "approvalId"))
    chat_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("chat_id", "chatId"))
    user_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))
    anonymous_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("anonymous_id", "anonymousId")
    )
    scope: str
    iat: int
    exp: int

    @property
    def subject(self) -> str:
        return self.chat_id or self.user_id or self.anonymous_id or "anonymous"


class TokenValidator:
    """
    HMAC JWT verifier for automation tokens.

    Only the configured algorithm is accepted; a token whose header names
    any other algorithm (including "none") is rejected before its
    signature is even considered.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], float]] = None,
    ):
        if algorithm not in _DIGESTS:
            raise ValueError(f"Unsupported algorithm: {algorithm}")
        self.secret = secret.encode("utf-8")
        self.algorithm = algorithm
        self._digest = _DIGESTS[algorithm]
        self._clock = clock or time.time

    def now(self) -> int:
        return int(self._clock())

    def validate(self, token: str) -> AuthorizationClaims:
        """
        Verify a token and return its claims.

        Raises:
            AuthFailure: malformed token, wrong algorithm, bad signature or claims
            TokenExpired: exp is strictly before now
        """
        if not token:
            raise AuthFailure("missing token")

        parts = token.split(".")
        if len(parts) != 3:
            raise AuthFailure("malformed token")
        header_b64, payload_b64, signature_b64 = parts

        header = self._decode_segment(header_b64, "header")
        if header.get("alg") != self.algorithm:
            raise AuthFailure("unsupported algorithm")

        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = hmac.new(self.secret, signing_input, self._digest).digest()
        try:
            provided_sig = _b64url_decode(signature_b64)
        except (binascii.Error, ValueError):
            raise AuthFailure("malformed signature")
        if not hmac.compare_digest(expected_sig, provided_sig):
            raise AuthFailure("invalid signature")

        payload = self._decode_segment(payload_b64, "payload")
        try:
            claims = AuthorizationClaims.model_validate(payload)
        except ValidationError as e:
            missing = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise AuthFailure(f"invalid claims: {', '.join(missing) or 'payload'}")

        # A token expiring exactly now is still accepted.
        now = self.now()
        if claims.exp < now:
            raise TokenExpired(exp=claims.exp, now=now)

        return claims

    def check_binding(self, claims: AuthorizationClaims, action_id: str) -> None:
        """
        Tightened check: the token must be scoped to execution of this action.

        Raises:
            AuthFailure: token was issued for another action or scope
        """
        if claims.action_id != action_id:
            raise AuthFailure(f"token not issued for action '{action_id}'")
        if claims.scope not in EXECUTE_SCOPES:
            raise AuthFailure(f"scope '{claims.scope}' does not permit execution")

    def issue(self, claims: Dict[str, Any], ttl_seconds: int = 600) -> str:
        """
        Sign a token with this validator's secret.

        iat and exp are filled in from the clock when absent.
        """
        now = self.now()
        body = {"iat": now, "exp": now + ttl_seconds, "scope": "both", **claims}
        header = {"alg": self.algorithm, "typ": "JWT"}
        header_b64 = _b64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
        payload_b64 = _b64url_encode(json.dumps(body, separators=(",", ":")).encode("utf-8"))
        signature = hmac.new(
            self.secret,
            f"{header_b64}.{payload_b64}".encode("ascii"),
            self._digest,
        ).digest()
        return f"{header_b64}.{payload_b64}.{_b64url_encode(signature)}"

    @staticmethod
    def _decode_segment(segment: str, name: str) -> Dict[str, Any]:
        try:
            value = json.loads(_b64url_decode(segment))
        except (binascii.Error, ValueError, UnicodeDecodeError):
            raise AuthFailure(f"malformed {name}")
        if not isinstance(value, dict):
            raise AuthFailure(f"malformed {name}")
        return value


def authorize(
    validator: TokenValidator,
    token: str,
    action_id: str,
    enforce_binding: bool = False,
) -> AuthorizationClaims:
    """
    Validate a token for a request on action_id.

    Without enforce_binding the claim's action and scope are decoded but
    not compared with the requested action.
    """
    claims = validator.validate(token)
    if enforce_binding:
        validator.check_binding(claims, action_id)
    return claims
