"""
HttpIdentityStore against a mocked transport.
"""

import json
from uuid import uuid4

import httpx
import pytest

from uhub.adapters.http_identity import HttpIdentityStore
from uhub.domain.errors import StoreError, StoreRejected, StoreTimeout

BASE_URL = "https://identity.example.test/auth/v1"


def _store(handler) -> HttpIdentityStore:  # type: ignore[no-untyped-def]
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpIdentityStore(BASE_URL + "/", "service-key", client=client)


class TestCreateIdentity:
    def test_posts_admin_user(self) -> None:
        user_id = uuid4()
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": str(user_id), "email": "a@example.com"})

        ref = _store(handler).create_identity(
            "a@example.com", "pw-123456", metadata={"role": "viewer"}, timeout=2.0
        )

        assert ref.id == user_id
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/admin/users"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["Authorization"] == "Bearer service-key"
        body = json.loads(request.content)
        assert body["email_confirm"] is True
        assert body["user_metadata"] == {"role": "viewer"}

    def test_client_error_is_rejection(self) -> None:
        store = _store(lambda r: httpx.Response(422, json={"msg": "User already registered"}))

        with pytest.raises(StoreRejected, match="User already registered"):
            store.create_identity("a@example.com", "pw", metadata={}, timeout=2.0)

    def test_server_error_is_not_a_rejection(self) -> None:
        store = _store(lambda r: httpx.Response(503, text="upstream unavailable"))

        with pytest.raises(StoreError) as exc:
            store.create_identity("a@example.com", "pw", metadata={}, timeout=2.0)
        assert not isinstance(exc.value, StoreRejected)

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(StoreTimeout) as exc:
            _store(handler).create_identity("a@example.com", "pw", metadata={}, timeout=2.0)
        assert exc.value.timeout == 2.0

    def test_connection_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(StoreError):
            _store(handler).create_identity("a@example.com", "pw", metadata={}, timeout=2.0)


class TestLookupAndDelete:
    def test_missing_identity_is_none(self) -> None:
        store = _store(lambda r: httpx.Response(404, json={"msg": "User not found"}))
        assert store.get_identity(uuid4(), timeout=2.0) is None

    def test_delete_missing_is_ok(self) -> None:
        store = _store(lambda r: httpx.Response(404))
        store.delete_identity(uuid4(), timeout=2.0)

    def test_delete_hits_user_path(self) -> None:
        user_id = uuid4()
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        _store(handler).delete_identity(user_id, timeout=2.0)

        assert seen[0].method == "DELETE"
        assert seen[0].url.path.endswith(f"/admin/users/{user_id}")


class TestAuthenticate:
    def test_password_grant(self) -> None:
        user_id = uuid4()

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["grant_type"] == "password"
            return httpx.Response(
                200,
                json={"access_token": "x", "user": {"id": str(user_id), "email": "a@example.com"}},
            )

        ref = _store(handler).authenticate("a@example.com", "pw", timeout=2.0)
        assert ref is not None and ref.id == user_id

    @pytest.mark.parametrize("status", [400, 401])
    def test_bad_credentials_is_none(self, status: int) -> None:
        store = _store(lambda r: httpx.Response(status, json={"error": "invalid_grant"}))
        assert store.authenticate("a@example.com", "wrong", timeout=2.0) is None
