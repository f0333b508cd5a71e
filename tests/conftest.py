"""
共用的 pytest fixtures

- 所有 API 測試都跑在記憶體儲存 (MemStorage) 上，不需要 MongoDB
- 上傳目錄指到暫存資料夾，測試不會弄髒專案
"""
import asyncio
import os
import tempfile

# 必須在匯入 main 之前設定好環境變數
os.environ.setdefault("STORAGE_TYPE", "memory")
os.environ.setdefault("UPLOAD_ROOT", tempfile.mkdtemp(prefix="workit-uploads-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from db import get_storage  # noqa: E402
from init_db import ensure_admin_user  # noqa: E402
from main import app  # noqa: E402
from storage import MemStorage  # noqa: E402

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def make_client(storage):
    """
    產生獨立的 TestClient (各自有自己的 Cookie)，
    用來模擬多個使用者同時登入。
    """
    app.dependency_overrides[get_storage] = lambda: storage
    clients = []

    def _make() -> TestClient:
        c = TestClient(app)
        c.__enter__()
        clients.append(c)
        return c

    yield _make

    for c in clients:
        c.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


def register(client: TestClient, username: str, role: str = "freelancer", password: str = DEFAULT_PASSWORD, **extra):
    payload = {
        "username": username,
        "email": f"{username.lower()}@example.com",
        "password": password,
        "confirm_password": password,
        "full_name": f"{username} Tester",
        "role": role,
        **extra,
    }
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def freelancer(make_client):
    c = make_client()
    return c, register(c, "alice", "freelancer")


@pytest.fixture
def employer(make_client):
    c = make_client()
    return c, register(c, "bob", "employer")


@pytest.fixture
def admin(make_client, storage):
    user = asyncio.run(ensure_admin_user(storage, "root", "rootpass1", "root@example.com"))
    c = make_client()
    response = c.post("/api/admin/login", json={"username": "root", "password": "rootpass1"})
    assert response.status_code == 200, response.text
    return c, user


def create_service(client: TestClient, **overrides):
    data = {
        "title": "Logo design",
        "description": "A clean vector logo",
        "price": "150",
        "category": "design",
        **overrides,
    }
    response = client.post("/api/services", data=data)
    assert response.status_code == 201, response.text
    return response.json()


def create_job(client: TestClient, **overrides):
    data = {
        "title": "Build a landing page",
        "description": "Single page marketing site",
        "budget": "800",
        "category": "web",
        "job_type": "fixed",
        **overrides,
    }
    response = client.post("/api/jobs", data=data)
    assert response.status_code == 201, response.text
    return response.json()
