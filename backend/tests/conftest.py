"""
Pytest fixtures for field stock backend tests.

Provides an in-memory database, one user per role, an agent with a
vehicle, two catalog products, and a Flask test client with bearer tokens.
"""

import pytest

from fieldstock import create_app
from fieldstock.extensions import db
from fieldstock.models import Agent, Product, User
from fieldstock.permissions import (
    ROLE_ACCOUNTANT,
    ROLE_AGENT,
    ROLE_COMPANY_OWNER,
    ROLE_IT_ADMIN,
    ROLE_SALES_MANAGER,
)
from fieldstock.services import session_service
from fieldstock.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'LEDGER_LOAD_POLICY': 'latest',
        'SETTLEMENT_STRICT_UNLOAD': False,
        'AGENT_PRESENCE_TTL_SECONDS': 3600,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table before each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    def _make(username: str, role: str) -> User:
        user = User(
            username=username,
            email=f"{username}@fieldstock.test",
            password_hash=password_hash,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin", ROLE_IT_ADMIN)


@pytest.fixture(scope='function')
def manager(make_user):
    return make_user("manager", ROLE_SALES_MANAGER)


@pytest.fixture(scope='function')
def accountant(make_user):
    return make_user("accountant", ROLE_ACCOUNTANT)


@pytest.fixture(scope='function')
def owner(make_user):
    return make_user("owner", ROLE_COMPANY_OWNER)


@pytest.fixture(scope='function')
def agent_user(make_user):
    return make_user("agent1", ROLE_AGENT)


@pytest.fixture(scope='function')
def agent(db_session, agent_user):
    """Agent with a 10,000.00 monthly target, acted for by agent_user."""
    agent = Agent(
        user_id=agent_user.id,
        name="Route 1",
        monthly_target_cents=1_000_000,
    )
    db_session.add(agent)
    db_session.commit()
    return agent


@pytest.fixture(scope='function')
def other_agent(db_session, make_user):
    user = make_user("agent2", ROLE_AGENT)
    agent = Agent(user_id=user.id, name="Route 2", monthly_target_cents=0)
    db_session.add(agent)
    db_session.commit()
    return agent


@pytest.fixture(scope='function')
def water(db_session):
    product = Product(sku="WATER-500", name="Water 500ml", unit_price_cents=4800)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def juice(db_session):
    product = Product(sku="JUICE-1L", name="Juice 1L", unit_price_cents=5000)
    db_session.add(product)
    db_session.commit()
    return product


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user: User) -> dict:
    _session, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return headers_for(manager)


@pytest.fixture(scope='function')
def accountant_headers(accountant):
    return headers_for(accountant)


@pytest.fixture(scope='function')
def owner_headers(owner):
    return headers_for(owner)


@pytest.fixture(scope='function')
def agent_headers(agent, agent_user):
    return headers_for(agent_user)
