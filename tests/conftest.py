import os

os.environ.setdefault("APP_OTEL_ENABLED", "false")

import httpx
import pytest

from bookapi.app import create_app
from bookapi.config import Settings

TEST_SECRET = "test-signing-secret-0123456789-abcdefghijklmnop"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def settings(tmp_path, monkeypatch):
    monkeypatch.delenv("APP_STRICT_SECURITY", raising=False)
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'books.db'}",
        jwt_secret=TEST_SECRET,
        otel_enabled=False,
        auto_create_schema=False,
        admin_default_password="admin-test-password",
        vault_addr=None,
        vault_token=None,
    )


@pytest.fixture()
def app(settings):
    app = create_app(settings)
    database = app.state.database
    database.create_all()
    yield app
    database.drop_all()
    database.dispose()


@pytest.fixture()
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def auth_headers(app):
    token = app.state.token_signer.issue(1, "tester")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def book_payload():
    return {
        "title": "Laskar Pelangi",
        "description": "A novel about ten children in Belitung.",
        "image_url": "https://example.com/laskar.jpg",
        "release_year": 2005,
        "price": 85000,
        "total_page": 529,
    }
