"""
Sessions and request signing.

A Session carries the authenticator used to sign every request made by the
Values derived from it, plus the transport and logger those requests use.
"""

import logging
import os
import secrets
import time
import urllib.parse
import urllib.request
from typing import Protocol

from lpad.core.client import DEFAULT_TIMEOUT, LpadError, Transport

PRODUCTION = "https://api.launchpad.net/1.0/"
STAGING = "https://api.staging.launchpad.net/1.0/"

DEFAULT_CONSUMER_KEY = "lpad"
DEFAULT_REALM = "https://api.launchpad.net/"


class Auth(Protocol):
    """Something able to log in to Launchpad and sign requests."""

    def login(self, base_url: str) -> None: ...

    def sign(self, request: urllib.request.Request) -> None: ...


class OAuth:
    """
    OAuth 1.0 PLAINTEXT signer, the scheme the Launchpad API accepts.

    Obtaining a token interactively is not supported; create the token in
    Launchpad and pass it in (or set LPAD_TOKEN / LPAD_TOKEN_SECRET).
    """

    def __init__(
        self,
        token: str | None = None,
        token_secret: str | None = None,
        consumer_key: str = DEFAULT_CONSUMER_KEY,
        realm: str = DEFAULT_REALM,
    ):
        self.token = token
        self.token_secret = token_secret
        self.consumer_key = consumer_key
        self.realm = realm

    @classmethod
    def from_env(cls) -> "OAuth":
        """Build a signer from LPAD_TOKEN, LPAD_TOKEN_SECRET and LPAD_CONSUMER_KEY."""
        return cls(
            token=os.environ.get("LPAD_TOKEN"),
            token_secret=os.environ.get("LPAD_TOKEN_SECRET"),
            consumer_key=os.environ.get("LPAD_CONSUMER_KEY") or DEFAULT_CONSUMER_KEY,
        )

    def login(self, base_url: str) -> None:
        if not self.token or not self.token_secret:
            raise LpadError(
                "OAuth token required. Set LPAD_TOKEN and LPAD_TOKEN_SECRET env vars",
                details={"base_url": base_url},
            )

    def sign(self, request: urllib.request.Request) -> None:
        params = [
            ("oauth_consumer_key", self.consumer_key),
            ("oauth_token", self.token or ""),
            ("oauth_signature_method", "PLAINTEXT"),
            # PLAINTEXT: consumer secret (always empty here) & token secret
            ("oauth_signature", "&" + (self.token_secret or "")),
            ("oauth_timestamp", str(int(time.time()))),
            ("oauth_nonce", secrets.token_hex(8)),
            ("oauth_version", "1.0"),
        ]
        header = ", ".join(f'{k}="{urllib.parse.quote(v, safe="")}"' for k, v in params)
        request.add_header("Authorization", f'OAuth realm="{self.realm}", {header}')


class Session:
    """
    A conversation with Launchpad.

    Creating sessions explicitly is generally not necessary; see
    lpad.login for the usual entry point.
    """

    def __init__(
        self,
        auth: Auth | None = None,
        logger: logging.Logger | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.auth = auth
        self.logger = logger or logging.getLogger("lpad")
        self.transport = Transport(timeout=timeout, log=self.logger)

    def sign(self, request: urllib.request.Request) -> None:
        """Attach credentials to a fully built request."""
        if self.auth is not None:
            self.auth.sign(request)


def base_url_from_env(base_url: str | None = None) -> str:
    """Resolve the API root: argument, then LPAD_BASE_URL, then production."""
    return base_url or os.environ.get("LPAD_BASE_URL") or PRODUCTION


def timeout_from_env(timeout: int | None = None) -> int:
    """Resolve the request timeout: argument, then LPAD_TIMEOUT, then the default."""
    if timeout is not None:
        return timeout
    raw = os.environ.get("LPAD_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        return int(raw)
    except ValueError:
        raise LpadError(f"LPAD_TIMEOUT must be an integer, got {raw!r}")
