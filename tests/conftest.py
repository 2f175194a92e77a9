import pytest
from fastapi.testclient import TestClient

from bloghub.config import Settings
from bloghub.main import create_app
from bloghub.services.users import create_user

TEST_SECRET = "test-secret-that-is-comfortably-longer-than-32-bytes"
PASSWORD = "pass1234"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'bloghub.db'}",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app, client):
    session = app.state.database.SessionLocal()
    yield session
    session.close()


@pytest.fixture
def login(client):
    """Log in and return bearer headers; the cookie jar is emptied so requests only carry the header."""

    def _login(username, password=PASSWORD):
        response = client.post("/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        token = response.cookies["access_token"]
        client.cookies.clear()
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture
def signup(client, login):
    def _signup(username, name=None):
        response = client.post(
            "/auth/register",
            json={
                "email": f"{username}@example.com",
                "username": username,
                "password": PASSWORD,
                "name": name or username.title(),
            },
        )
        assert response.status_code == 201, response.text
        return {"id": response.json()["id"], "headers": login(username)}

    return _signup


@pytest.fixture
def admin(app, client, login):
    session = app.state.database.SessionLocal()
    try:
        user = create_user(
            session,
            app.state.hasher,
            email="root@example.com",
            username="root",
            password=PASSWORD,
            name="Root",
            role="admin",
        )
        user_id = user.id
    finally:
        session.close()
    return {"id": user_id, "headers": login("root")}


@pytest.fixture
def alice(signup):
    return signup("alice")


@pytest.fixture
def bob(signup):
    return signup("bob")


@pytest.fixture
def alice_post(client, alice):
    response = client.post(
        "/blog",
        json={"title": "Notes on SQLAlchemy", "content": "Sessions are units of work."},
        headers=alice["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()
