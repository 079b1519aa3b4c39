import httpx
import pytest
from fastapi.testclient import TestClient

from muthawwif.api.main import create_app
from muthawwif.auth import HostedAuthClient
from muthawwif.storage import Database, Profile
from muthawwif.utils.config import Config

# access token -> provider user record
TOKENS = {
    "admin-token": {"id": "u-admin", "email": "admin@example.com", "user_metadata": {"full_name": "Admin"}},
    "owner-token": {"id": "u-owner", "email": "owner@example.com", "user_metadata": {"full_name": "Muniful"}},
    "user-token": {"id": "u-user", "email": "jamaah@example.com", "user_metadata": {"full_name": "Jamaah"}},
}


def auth_provider(request: httpx.Request) -> httpx.Response:
    token = request.headers.get("Authorization", "").replace("Bearer ", "")
    path = request.url.path
    if path == "/auth/v1/user":
        if token not in TOKENS:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json=TOKENS[token])
    if path == "/auth/v1/token":
        return httpx.Response(
            200,
            json={"access_token": "user-token", "expires_in": 3600, "user": TOKENS["user-token"]},
        )
    if path == "/auth/v1/logout":
        return httpx.Response(204)
    return httpx.Response(404)


@pytest.fixture
def db():
    database = Database("sqlite:///:memory:")
    database.insert(Profile, {"id": "u-admin", "email": "admin@example.com", "role": "admin"})
    database.insert(Profile, {"id": "u-owner", "email": "owner@example.com", "role": "owner"})
    database.insert(Profile, {"id": "u-user", "email": "jamaah@example.com", "role": "user"})
    return database


@pytest.fixture
def client(db):
    auth = HostedAuthClient("http://auth.test", transport=httpx.MockTransport(auth_provider))
    app = create_app(config=Config(), db=db, auth=auth)
    return TestClient(app)
