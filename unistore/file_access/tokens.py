# unistore/file_access/tokens.py
"""
Stateless signed access tokens.

A token is an HS256 JWT carrying {path, op, iat, exp}. The backend that minted
it can validate it later without storing anything: the signature proves it
was issued with our secret, and the claims bind it to exactly one
(path, operation) pair.
"""
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Union

import jwt

from unistore.file_access.base import SignedURLOperation
from unistore.file_access.config import SignedURLConfig
from unistore.file_access.errors import ErrorKind, StorageError, invalid_token, token_expired

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["path", "op", "iat", "exp"]


class SignedTokenSigner:
    """Issue and validate signed access tokens for one secret."""

    def __init__(self, config: SignedURLConfig, clock: Callable[[], float] = time.time):
        self.config = config
        self._clock = clock

    def _require_enabled(self) -> str:
        if not self.config.enabled:
            raise StorageError(ErrorKind.SIGNED_URL_FAILED, "signed URLs are not enabled")
        if not self.config.secret_key:
            raise StorageError(ErrorKind.SIGNED_URL_FAILED, "secret key is required for signed URLs")
        return self.config.secret_key

    def issue(
        self,
        path: str,
        operation: Union[SignedURLOperation, str],
        expires_in: Union[timedelta, int, float, None] = None
    ) -> str:
        """Mint a token for ``(path, operation)`` valid for ``expires_in``."""
        secret = self._require_enabled()
        if expires_in is None:
            expires_in = self.config.expires_in
        if not isinstance(expires_in, timedelta):
            expires_in = timedelta(seconds=expires_in)

        now = int(self._clock())
        claims = {
            "path": path,
            "op": SignedURLOperation(operation).value,
            "iat": now,
            "exp": now + int(expires_in.total_seconds()),
        }
        try:
            return jwt.encode(claims, secret, algorithm=ALGORITHM)
        except Exception as exc:
            raise StorageError(ErrorKind.SIGNED_URL_FAILED, "failed to sign token", cause=exc) from exc

    def validate(self, token: str, path: str, operation: Union[SignedURLOperation, str]) -> Dict[str, Any]:
        """
        Validate ``token`` for ``(path, operation)``.

        Signature and shape are checked first, then path and operation, then
        expiry.

        Raises:
            StorageError: INVALID_TOKEN (bad signature/shape or mismatch, or
                signing not configured), TOKEN_EXPIRED (past exp)
        """
        try:
            secret = self._require_enabled()
        except StorageError as exc:
            raise invalid_token(exc.message, cause=exc) from exc
        if not token:
            raise invalid_token("token is empty")

        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError as exc:
            raise invalid_token(f"invalid token: {exc}", cause=exc) from exc

        if not isinstance(claims.get("path"), str) or claims["path"] != path:
            raise invalid_token("token path does not match requested path")

        if not isinstance(claims.get("op"), str) or claims["op"] != SignedURLOperation(operation).value:
            raise invalid_token("token operation does not match requested operation")

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            raise invalid_token("token expiry is malformed")
        if self._clock() > exp:
            raise token_expired()

        return claims
