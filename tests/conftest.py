"""
Shared pytest fixtures: in‑memory SQLite, a scripted balance provider and a
FastAPI TestClient wired to both.
"""
import io
import json
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="consulta-saldo-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP}/app.db")
os.environ.setdefault("DATA_DIR", _TMP)
os.environ.setdefault("RESULTS_DIR", os.path.join(_TMP, "results"))

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from openpyxl import Workbook  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import Settings  # noqa: E402
from app.consultation.correlation_store import InMemoryCorrelationStore  # noqa: E402
from app.consultation.flow import ConsultationFlow  # noqa: E402
from app.consultation.provider_client import ProviderClient  # noqa: E402
from app.consultation.token_cache import TokenCache  # noqa: E402
from app.consultation.webhook import WebhookReceiver  # noqa: E402
from app.database import Base, get_db, get_session_factory  # noqa: E402
from app.dependencies import (  # noqa: E402
    get_consultation_flow,
    get_correlation_store,
    get_identity_provider,
    get_provider_client,
    get_result_storage,
)
from app.identity import IdentityUser  # noqa: E402
from app.main import app  # noqa: E402
from app.models import ProfileModel  # noqa: E402
from app.storage import ResultStorage  # noqa: E402

AUTH_URL = "https://auth.example.test/oauth/token"
CONSULTATION_URL = "https://bff.example.test/fgts/balance"
WEBHOOK_URL = "https://portal.example.test/api/webhook"

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


def make_settings(**overrides) -> Settings:
    values = dict(
        V8_AUTH_URL=AUTH_URL,
        V8_CLIENT_ID="client-id",
        V8_USERNAME="svc@example.test",
        V8_PASSWORD="secret",
        V8_AUDIENCE="https://bff.example.test",
        V8_SCOPE="offline_access",
        V8_CONSULTATION_URL=CONSULTATION_URL,
        WEBHOOK_URL=WEBHOOK_URL,
    )
    values.update(overrides)
    return Settings(**values)


def make_xlsx(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


class FakeBalanceProvider:
    """Scripted token authority + consultation API.

    ``callbacks[doc]`` is delivered to the webhook receiver as soon as the
    consultation for ``doc`` is dispatched; ``failures[doc]`` makes the
    dispatch itself fail with that HTTP status. ``token_response`` replaces the
    authority's answer when set.
    """

    def __init__(self, receiver: WebhookReceiver):
        self.receiver = receiver
        self.callbacks = {}
        self.failures = {}
        self.token_requests = 0
        self.consultations = []
        self.token_response = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == AUTH_URL:
            self.token_requests += 1
            if self.token_response is not None:
                return self.token_response
            return httpx.Response(200, json={"access_token": "tok-123", "expires_in": 3600})

        payload = json.loads(request.content)
        self.consultations.append(payload)
        doc = payload["documentNumber"]
        if doc in self.failures:
            return httpx.Response(self.failures[doc], json={"error": f"falha para {doc}"})
        if doc in self.callbacks:
            self.receiver.on_callback({"documentNumber": doc, **self.callbacks[doc]})
        return httpx.Response(200, json={"status": "accepted"})


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store():
    return InMemoryCorrelationStore()


@pytest.fixture()
def provider(store):
    return FakeBalanceProvider(WebhookReceiver(store))


@pytest.fixture()
def provider_client(provider):
    settings = make_settings()
    transport = httpx.MockTransport(provider.handler)
    return ProviderClient(settings, TokenCache(settings, transport=transport), transport=transport)


@pytest.fixture()
def flow(store, provider_client):
    return ConsultationFlow(store, provider_client, poll_interval=0, max_attempts=3)


class FakeIdentityProvider:
    def __init__(self):
        self.tokens = {
            "admin-token": IdentityUser(id="admin-id", email="admin@example.test"),
            "user-token": IdentityUser(id="user-id", email="user@example.test"),
            "other-token": IdentityUser(id="other-id", email="other@example.test"),
            "ghost-token": IdentityUser(id="ghost-id", email="ghost@example.test"),
        }
        self.created = []
        self.deleted = []

    async def get_user(self, token):
        return self.tokens.get(token)

    async def create_user(self, email, password):
        user = IdentityUser(id=f"new-{len(self.created) + 1}", email=email)
        self.created.append(user)
        return user

    async def delete_user(self, user_id):
        self.deleted.append(user_id)


@pytest.fixture()
def identity():
    return FakeIdentityProvider()


@pytest.fixture()
def profiles(db):
    db.add_all([
        ProfileModel(id="admin-id", email="admin@example.test", role="admin"),
        ProfileModel(id="user-id", email="user@example.test", role="user"),
        ProfileModel(id="other-id", email="other@example.test", role="user"),
    ])
    db.commit()


@pytest.fixture()
def storage(tmp_path):
    return ResultStorage(str(tmp_path / "results"))


@pytest.fixture()
def client(db, profiles, identity, store, provider_client, flow, storage):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_session_factory] = lambda: _Session
    app.dependency_overrides[get_identity_provider] = lambda: identity
    app.dependency_overrides[get_correlation_store] = lambda: store
    app.dependency_overrides[get_provider_client] = lambda: provider_client
    app.dependency_overrides[get_consultation_flow] = lambda: flow
    app.dependency_overrides[get_result_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_headers():
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture()
def user_headers():
    return {"Authorization": "Bearer user-token"}


@pytest.fixture()
def other_headers():
    return {"Authorization": "Bearer other-token"}
