# -*- coding: utf-8 -*-
"""Issue and validate HS256 bearer tokens carrying coarse permission strings.

The signing secret is read from the :class:`SecretProvider` on every call, so a
rotation takes effect on the next token without a restart. Validation also
accepts tokens signed with a deprecated secret when the provider exposes its
deprecated window through ``get_all_secrets()``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import jwt
import pytz

from .exceptions import InvalidToken

SIGNING_ALGORITHM = "HS256"

DEFAULT_ISSUER = "banks-api"

DEFAULT_SUBJECT = "api-client"

PERMISSION_BANKS_READ = "banks:read"
PERMISSION_BANKS_WRITE = "banks:write"

KNOWN_PERMISSIONS = (PERMISSION_BANKS_READ, PERMISSION_BANKS_WRITE)


@dataclass
class Claims:
    subject: str
    issuer: str
    issued_at: datetime
    expires_at: datetime
    permissions: list = field(default_factory=list)

    def has_permission(self, required):
        return required in self.permissions

    def has_any_permission(self, required):
        return any(self.has_permission(permission) for permission in required)

    def has_all_permissions(self, required):
        return all(self.has_permission(permission) for permission in required)

    @classmethod
    def from_payload(cls, payload):
        permissions = payload.get("permissions") or []
        if not isinstance(permissions, list):
            raise InvalidToken("invalid token claims: permissions must be a list")
        return cls(subject=payload.get("sub"),
                   issuer=payload.get("iss"),
                   issued_at=datetime.fromtimestamp(payload["iat"], pytz.utc),
                   expires_at=datetime.fromtimestamp(payload["exp"], pytz.utc),
                   permissions=list(permissions))


class JWTService:
    """Token issuing and validation over a secret provider.

    Args:
        provider (SecretProvider): source of the signing secret.
        expiry (timedelta): lifetime of generated tokens.
        issuer (str, optional): ``iss`` claim written and required.
        subject (str, optional): ``sub`` claim written into tokens.
    """

    def __init__(self, provider, expiry=timedelta(hours=24), issuer=DEFAULT_ISSUER,
                 subject=DEFAULT_SUBJECT):
        self._provider = provider
        self._expiry = expiry
        self._issuer = issuer
        self._subject = subject

    @property
    def expiry(self):
        return self._expiry

    def _verification_secrets(self):
        get_all_secrets = getattr(self._provider, "get_all_secrets", None)
        if get_all_secrets is None:
            return [self._provider.get_secret()]
        current, deprecated = get_all_secrets()
        # most recently retired first, they are the likeliest match
        return [current] + list(reversed(deprecated))

    def generate_token(self, permissions):
        now = datetime.now(pytz.utc)
        payload = {
            "sub": self._subject,
            "iss": self._issuer,
            "iat": now,
            "nbf": now,
            "exp": now + self._expiry,
            "permissions": list(permissions),
        }
        return jwt.encode(payload, self._provider.get_secret(), algorithm=SIGNING_ALGORITHM)

    def validate_token(self, token):
        """Return the token's :class:`Claims` or raise :class:`InvalidToken`."""
        for secret in self._verification_secrets():
            try:
                payload = jwt.decode(token,
                                     secret,
                                     algorithms=[SIGNING_ALGORITHM],
                                     issuer=self._issuer,
                                     options={"require": ["exp", "iat", "iss"]})
            except jwt.InvalidSignatureError:
                continue
            except jwt.InvalidTokenError as e:
                logging.getLogger(__name__).warning(
                    f"Failed to parse token of length {len(token)}: {e}")
                raise InvalidToken(f"failed to parse token: {e}") from e
            return Claims.from_payload(payload)

        logging.getLogger(__name__).warning(
            f"Token of length {len(token)} not signed by any known secret")
        raise InvalidToken("invalid token signature")
