import os
import sys
import uuid
from pathlib import Path

# Ajoute la racine du projet au PYTHONPATH EN PREMIER
sys.path.insert(0, str(Path(__file__).parent.parent))

# Secret de test AVANT d'importer l'app
os.environ.setdefault("JWT_SECRET", "test-secret-do-not-use")

import pytest
from fastapi.testclient import TestClient

from dotask.core.config import Settings
from dotask.core.database import Base, create_db_engine, init_db
from dotask.core.security import CredentialService
from dotask.main import create_app
from dotask.store.memory import MemoryStore
from dotask.store.sql import SqlStore

SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///./test.db"
TEST_SETTINGS = Settings(
    jwt_secret="test-secret-do-not-use",
    database_url=SQLALCHEMY_TEST_DATABASE_URL,
)
test_engine = create_db_engine(SQLALCHEMY_TEST_DATABASE_URL)


@pytest.fixture(autouse=True)
def setup_teardown():
    """Crée et nettoie la DB avant/après chaque test"""
    Base.metadata.drop_all(bind=test_engine)
    init_db(test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def settings():
    return TEST_SETTINGS


@pytest.fixture
def credentials():
    return CredentialService(TEST_SETTINGS)


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """Chaque test tourne sur les deux backends"""
    if request.param == "sql":
        return SqlStore(test_engine)
    return MemoryStore()


@pytest.fixture
def client(store):
    """Client de test FastAPI"""
    return TestClient(create_app(TEST_SETTINGS, store=store))


@pytest.fixture
def gql(client):
    """Exécute une requête GraphQL et retourne le JSON"""
    def run(query, variables=None, token=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        response = client.post("/query", json={"query": query, "variables": variables or {}}, headers=headers)
        assert response.status_code == 200
        return response.json()
    return run


REGISTER = """
mutation Register($input: RegisterInput!) {
  register(input: $input) { token user { id name email createdAt updatedAt } }
}
"""


@pytest.fixture
def register(client, gql):
    """Crée un utilisateur et retourne (user, token). Les cookies sont vidés."""
    def run(name="Test User", email=None, password="password123"):
        email = email or f"user_{uuid.uuid4().hex[:8]}@example.com"
        data = gql(REGISTER, {"input": {"name": name, "email": email, "password": password}})
        client.cookies.clear()
        assert "errors" not in data, data
        payload = data["data"]["register"]
        return payload["user"], payload["token"]
    return run


@pytest.fixture
def auth_token(register):
    """Token JWT d'un utilisateur frais"""
    return register()[1]


def error_code(data):
    return data["errors"][0]["extensions"]["code"]
