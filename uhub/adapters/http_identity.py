"""
Identity store backed by a managed auth service's admin API.

Speaks the GoTrue-style admin endpoints (``/admin/users``) with a
service-role key. Transport timeouts become ``StoreTimeout``; 4xx answers
become ``StoreRejected``; 5xx answers and connection failures become a
plain ``StoreError`` since the outcome of the request is unknown.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

import httpx

from uhub.domain.entities import IdentityRef
from uhub.domain.errors import StoreError, StoreRejected, StoreTimeout

logger = logging.getLogger(__name__)


class HttpIdentityStore:
    store_name = "identity-service"

    def __init__(
        self,
        base_url: str,
        service_key: str,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client()
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        timeout: float,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            return self._client.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=self._headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("Identity service %s timed out after %ss", operation, timeout)
            raise StoreTimeout(self.store_name, operation, timeout) from e
        except httpx.TransportError as e:
            raise StoreError(self.store_name, f"{operation} failed: {e}") from e

    def _raise_for_status(self, operation: str, response: httpx.Response) -> None:
        if response.is_success:
            return
        detail = _error_message(response)
        if response.is_client_error:
            raise StoreRejected(self.store_name, f"{operation}: {response.status_code} {detail}")
        raise StoreError(self.store_name, f"{operation}: {response.status_code} {detail}")

    def create_identity(
        self, email: str, password: str, *, metadata: Mapping[str, str], timeout: float
    ) -> IdentityRef:
        response = self._request(
            "create_identity",
            "POST",
            "/admin/users",
            timeout=timeout,
            json={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": dict(metadata),
            },
        )
        self._raise_for_status("create_identity", response)
        return _to_ref(response.json())

    def get_identity(self, identity_id: UUID, *, timeout: float) -> IdentityRef | None:
        response = self._request(
            "get_identity", "GET", f"/admin/users/{identity_id}", timeout=timeout
        )
        if response.status_code == 404:
            return None
        self._raise_for_status("get_identity", response)
        return _to_ref(response.json())

    def delete_identity(self, identity_id: UUID, *, timeout: float) -> None:
        response = self._request(
            "delete_identity", "DELETE", f"/admin/users/{identity_id}", timeout=timeout
        )
        if response.status_code == 404:
            return
        self._raise_for_status("delete_identity", response)

    def authenticate(self, email: str, password: str, *, timeout: float) -> IdentityRef | None:
        response = self._request(
            "authenticate",
            "POST",
            "/token",
            timeout=timeout,
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code in (400, 401):
            return None
        self._raise_for_status("authenticate", response)
        return _to_ref(response.json()["user"])


def _to_ref(body: Mapping[str, Any]) -> IdentityRef:
    return IdentityRef(id=UUID(str(body["id"])), email=body["email"])


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("msg") or body.get("message") or body.get("error") or body)
    return str(body)
