"""
Pytest fixtures for the SUPERMART backend tests.

Provides a fresh app + in-memory database per test, repository bundles for
both storage backends, auth header helpers and a fake advisory collaborator.
"""

from concurrent.futures import Future

import pytest

from supermart import create_app
from supermart.config import TestConfig
from supermart.extensions import db
from supermart.repositories import get_repositories
from supermart.services import auth_service, catalog_service
from supermart.services.advisory_service import (
    ADVISORY_BOARD_KEY,
    AdvisoryBoard,
    AdvisoryUnavailableError,
    Insight,
)


@pytest.fixture
def storage_backend():
    """Override with @pytest.mark.parametrize("storage_backend", [...])."""
    return "sql"


@pytest.fixture(scope='function')
def app(storage_backend):
    """Create application for testing."""
    app = create_app(TestConfig)
    app.config["STORAGE_BACKEND"] = storage_backend

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
    app.extensions[ADVISORY_BOARD_KEY].shutdown()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    with app.app_context():
        yield db.session
        db.session.rollback()


@pytest.fixture(scope='function')
def repos(app):
    """Unit of work for the configured backend, inside an app context."""
    with app.app_context():
        yield get_repositories()


@pytest.fixture
def make_product(repos):
    """Factory: create a product through the catalog service."""
    def _make(name="Red Apples", price_cents=100, cost_price_cents=60, quantity=10, min_threshold=2, **extra):
        patch = {
            "name": name,
            "price_cents": price_cents,
            "cost_price_cents": cost_price_cents,
            "quantity": quantity,
            "min_threshold": min_threshold,
        }
        patch.update(extra)
        return catalog_service.create_product(repos, patch=patch)
    return _make


# =============================================================================
# Auth helpers
# =============================================================================

SELLER_EMAIL = "seller@test.local"
SELLER_PASSWORD = "sell1234"


def login(client, **body) -> str | None:
    """Helper to get a bearer token."""
    response = client.post('/api/auth/login', json=body)
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(client):
    return auth_headers(login(client, role="Admin", password=TestConfig.ADMIN_PASSWORD))


@pytest.fixture
def seller(app):
    with app.app_context():
        seller = auth_service.create_seller(email=SELLER_EMAIL, name="Sam Seller", password=SELLER_PASSWORD)
        return seller.to_dict()


@pytest.fixture
def seller_headers(client, seller):
    return auth_headers(login(client, role="Seller", email=SELLER_EMAIL, password=SELLER_PASSWORD))


# =============================================================================
# Advisory doubles
# =============================================================================

class InlineExecutor:
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class ManualExecutor:
    """Queues submitted work until the test runs it."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_next(self):
        future, fn, args, kwargs = self.pending.pop(0)
        if not future.set_running_or_notify_cancel():
            return
        future.set_result(fn(*args, **kwargs))

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class FakeAdvisor:
    def __init__(self, insight="Stock looks healthy.", recommendations=("Reorder milk",), fail=False):
        self.insight = insight
        self.recommendations = tuple(recommendations)
        self.fail = fail
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.fail:
            raise AdvisoryUnavailableError("model offline")
        return Insight(insight=self.insight, recommendations=self.recommendations)


@pytest.fixture
def fake_advisor(app):
    """Swap the app's advisory board for one with a fake advisor and inline executor."""
    advisor = FakeAdvisor()
    app.extensions[ADVISORY_BOARD_KEY].shutdown()
    app.extensions[ADVISORY_BOARD_KEY] = AdvisoryBoard(advisor, InlineExecutor())
    return advisor
