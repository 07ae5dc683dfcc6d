"""
GraphQL client for the Spacelift API.

Requests are authenticated with a short-lived JWT obtained by exchanging an
API key id and secret.  The token is cached on the auth object and
refreshed on the first request after it has aged out.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from requests.auth import AuthBase

from spacebridge.constants import (
    GRAPHQL_PATH,
    GRAPHQL_TIMEOUT_SECONDS,
    HTTP_OK_MAX,
    HTTP_OK_MIN,
    TOKEN_TTL_SECONDS,
)
from spacebridge.core.config import AccountConfig
from spacebridge.core.context import RunContext
from spacebridge.exceptions import APIError
from spacebridge.utils.logging import (
    log_api_request,
    log_api_response,
    log_with_context,
)

TOKEN_MUTATION = """
mutation GetToken($keyId: ID!, $keySecret: String!) {
  apiKeyUser(id: $keyId, secret: $keySecret) {
    jwt
  }
}
"""


def _is_success(status_code: int) -> bool:
    return HTTP_OK_MIN <= status_code <= HTTP_OK_MAX


def _first_error(payload: dict[str, Any]) -> str | None:
    errors = payload.get("errors") or []
    if not errors:
        return None
    first = errors[0]
    if isinstance(first, dict):
        return str(first.get("message", first))
    return str(first)


class SpaceliftAuth(AuthBase):
    """Bearer-token auth that exchanges an API key for a cached JWT.

    Args:
        url: Account base URL, e.g. ``https://acme.app.spacelift.io``.
        key_id: API key id.
        secret_key: API key secret.
        session: Session used for the token exchange.
        ttl: Seconds a token is reused before it is refreshed.
        clock: Monotonic clock, replaceable in tests.
    """

    def __init__(
        self,
        url: str,
        key_id: str,
        secret_key: str,
        session: requests.Session | None = None,
        ttl: float = TOKEN_TTL_SECONDS,
        clock=time.monotonic,
    ) -> None:
        self.url = url.rstrip("/")
        self.key_id = key_id
        self.secret_key = secret_key
        self.session = session or requests.Session()
        self.ttl = ttl
        self.clock = clock
        self._token: str | None = None
        self._expires_at = 0.0

    @property
    def token(self) -> str:
        """A valid JWT, fetching a new one if needed."""
        if self._token is None or self.clock() >= self._expires_at:
            return self._refresh()
        return self._token

    def _refresh(self) -> str:
        endpoint = f"{self.url}{GRAPHQL_PATH}"
        log_with_context(logging.DEBUG, f"Authenticating with Spacelift at {self.url}")
        try:
            response = self.session.post(
                endpoint,
                json={
                    "query": TOKEN_MUTATION,
                    "variables": {"keyId": self.key_id, "keySecret": self.secret_key},
                },
                timeout=GRAPHQL_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            raise APIError(f"failed to authenticate: token request failed: {e}") from e

        if not _is_success(response.status_code):
            raise APIError(
                f"failed to authenticate: token request returned status "
                f"{response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise APIError(f"failed to decode token response: {e}") from e

        message = _first_error(payload)
        if message:
            raise APIError(f"failed to authenticate: {message}")

        jwt = ((payload.get("data") or {}).get("apiKeyUser") or {}).get("jwt")
        if not jwt:
            raise APIError("failed to authenticate: no token in response")

        self._token = jwt
        self._expires_at = self.clock() + self.ttl
        log_with_context(
            logging.DEBUG,
            f"Authenticated; token reused for {int(self.ttl // 60)} minutes",
        )
        return jwt

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = f"Bearer {self.token}"
        return request


class GraphQLClient:
    """Sends queries and mutations to one Spacelift account."""

    def __init__(
        self,
        url: str,
        auth: AuthBase,
        session: requests.Session | None = None,
        context: RunContext | None = None,
        timeout: float = GRAPHQL_TIMEOUT_SECONDS,
    ) -> None:
        self._url = url.rstrip("/")
        self.auth = auth
        self.session = session or requests.Session()
        self.context = context or RunContext()
        self.timeout = timeout

    @property
    def url(self) -> str:
        """The account base URL."""
        return self._url

    @property
    def endpoint(self) -> str:
        return f"{self._url}{GRAPHQL_PATH}"

    def query(
        self, document: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a GraphQL query and return its ``data`` object."""
        return self._execute(document, variables)

    def mutate(
        self, document: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a GraphQL mutation and return its ``data`` object."""
        return self._execute(document, variables)

    def _execute(
        self, document: str, variables: dict[str, Any] | None
    ) -> dict[str, Any]:
        body = {"query": document, "variables": variables or {}}
        if self.context.debug_api:
            log_api_request("POST", self.endpoint, body)

        try:
            response = self.session.post(
                self.endpoint, json=body, auth=self.auth, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise APIError(f"request to {self.endpoint} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if self.context.debug_api:
            log_api_response(response.status_code, self.endpoint, payload)

        if isinstance(payload, dict):
            message = _first_error(payload)
            if message:
                raise APIError(
                    f"GraphQL error: {message}", status_code=response.status_code
                )

        if not _is_success(response.status_code):
            raise APIError(
                f"request to {self.endpoint} returned status {response.status_code}",
                status_code=response.status_code,
            )

        if not isinstance(payload, dict):
            raise APIError(f"failed to decode response from {self.endpoint}")

        return payload.get("data") or {}


def create_client(
    account: AccountConfig, context: RunContext | None = None
) -> GraphQLClient:
    """
    Build an authenticated client for one account.

    The account is validated first, so a configuration problem surfaces
    before any network call.

    Args:
        account: Account credentials
        context: Run flags (used for API debug logging)

    Returns:
        A GraphQLClient sharing one session with its auth object

    Raises:
        ConfigurationError: If the account credentials are incomplete
    """
    account.validate()
    session = requests.Session()
    auth = SpaceliftAuth(account.url, account.key_id, account.secret_key, session)
    return GraphQLClient(account.url, auth, session=session, context=context)
