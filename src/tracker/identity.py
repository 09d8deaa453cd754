from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import jwt


BEARER_PREFIX = "bearer "


class AuthenticationError(Exception):
    pass


@dataclass(frozen=True)
class CallerIdentity:
    user_id: str
    teams: frozenset[str] = field(default_factory=frozenset)
    org_id: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"user_id": self.user_id, "teams": sorted(self.teams), "org_id": self.org_id}


def _claim_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _claim_teams(value: object) -> frozenset[str]:
    if isinstance(value, str):
        return frozenset(item.strip() for item in value.split(",") if item.strip())
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(str(item).strip() for item in value if str(item).strip())
    return frozenset()


def identity_from_claims(claims: Mapping[str, object]) -> CallerIdentity:
    user_id = _claim_text(claims.get("login")) or _claim_text(claims.get("sub"))
    if user_id is None:
        raise AuthenticationError("token is missing a subject claim")
    return CallerIdentity(
        user_id=user_id,
        teams=_claim_teams(claims.get("teams")),
        org_id=_claim_text(claims.get("org")),
    )


def decode_bearer_token(
    authorization: str | None,
    secret: str,
    algorithms: Sequence[str] = ("HS256",),
) -> CallerIdentity:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        raise AuthenticationError("missing bearer token")
    token = authorization[len(BEARER_PREFIX):].strip()
    try:
        claims = jwt.decode(token, secret, algorithms=list(algorithms))
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError(f"invalid token: {exc}") from exc
    return identity_from_claims(claims)
