"""Pytest fixtures for the CivicVote API.

The application runs against an in-memory mongomock database with the same
indexes as production; ``get_db`` is overridden so no MongoDB server is needed.
"""
import os
import tempfile

os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="civicvote-uploads-")

from typing import Callable, Dict, Tuple

import mongomock
import pytest
from fastapi.testclient import TestClient

from civicvote.database import ensure_indexes, get_db
from civicvote.main import app

ADMIN_NATIONAL_ID = "999900000000"
VOTER_NATIONAL_ID = "100000000001"


def voter_payload(
    national_id: str = VOTER_NATIONAL_ID,
    role: str = "voter",
    dob: str = "1990-05-05",
    state: str = "Karnataka",
    password: str = "secret123",
) -> Dict:
    return {
        "name": f"Voter {national_id[-4:]}",
        "age": 35,
        "email": f"v{national_id}@example.com",
        "password": password,
        "phone": "9876543210",
        "address": {"street": "1 MG Road", "city": "Bengaluru", "state": state, "pincode": "560001"},
        "sex": "Female",
        "relative": {"relationType": "D/O", "relativeName": "R. Rao"},
        "nationalId": national_id,
        "role": role,
        "profilePhoto": "https://img.example.com/p.jpg",
        "dob": dob,
    }


@pytest.fixture
def make_payload() -> Callable[..., Dict]:
    return voter_payload


@pytest.fixture
def db():
    """Fresh in-memory database with production indexes."""
    database = mongomock.MongoClient().get_database("civicvote_test")
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db) -> TestClient:
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header() -> Callable[[str], Dict[str, str]]:
    return lambda token: {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client) -> Callable[..., Tuple[Dict, str]]:
    """Register through the API and return (user, token)."""
    def _signup(**overrides):
        response = client.post("/user/signup", json=voter_payload(**overrides))
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], body["token"]
    return _signup


@pytest.fixture
def admin_token(signup) -> str:
    return signup(national_id=ADMIN_NATIONAL_ID, role="admin")[1]


@pytest.fixture
def voter_token(signup) -> str:
    return signup()[1]


@pytest.fixture
def make_candidate(client, admin_token, auth_header) -> Callable[..., str]:
    def _make(name: str, party: str, **extra) -> str:
        response = client.post(
            "/candidates",
            json={"name": name, "party": party, **extra},
            headers=auth_header(admin_token),
        )
        assert response.status_code == 201, response.text
        return response.json()["candidate"]["_id"]
    return _make


@pytest.fixture
def make_election(client, admin_token, auth_header) -> Callable[..., str]:
    def _make(candidate_ids, title: str = "General Election", date: str = "2030-01-15") -> str:
        response = client.post(
            "/elections/add",
            json={"title": title, "dateOfElection": date, "parties": list(candidate_ids)},
            headers=auth_header(admin_token),
        )
        assert response.status_code == 201, response.text
        return response.json()["_id"]
    return _make
