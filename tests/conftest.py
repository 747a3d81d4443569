import os
import tempfile

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="blog-uploads-"))

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app

PASSWORD = "correct-horse"
ANSWER = "Rex"


@pytest.fixture
def db():
    database = mongomock.MongoClient()["blog_test"]
    ensure_indexes(database)
    app.dependency_overrides[get_db] = lambda: database
    yield database
    app.dependency_overrides.clear()


@pytest.fixture
def client(db):
    return TestClient(app)


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, name="Alice", email="alice@example.com", password=PASSWORD, answer=ANSWER):
    resp = client.post(
        "/auth/register",
        json={"name": name, "email": email, "password": password, "answer": answer},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["user"], body["token"]


def promote(db, user):
    db["user"].update_one({"_id": ObjectId(user["id"])}, {"$set": {"role": "admin"}})


@pytest.fixture
def alice(client):
    return register(client)


@pytest.fixture
def bob(client):
    return register(client, name="Bob", email="bob@example.com")


@pytest.fixture
def admin(client, db):
    user, token = register(client, name="Root", email="root@example.com")
    promote(db, user)
    return user, token


def create_blog(client, token, **fields):
    payload = {"title": "Hello World", "description": "First post"}
    payload.update(fields)
    resp = client.post("/blogs", json=payload, headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
