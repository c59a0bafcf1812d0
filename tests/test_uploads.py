import os
from pathlib import Path

import httpx

from backend.app.services import object_storage


def _register(client, *, email: str, role: str = "jobseeker", files=None):
    r = client.post(
        "/auth/register",
        data={"email": email, "password": "Testpass123!", "role": role, "name": "Uploader"},
        files=files,
    )
    client.cookies.clear()
    return r


def _auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _local_path(url: str) -> Path:
    key = url.split("/uploads/", 1)[1]
    return Path(os.environ["UPLOAD_DIR"]) / key


def test_register_with_profile_image_is_stored_and_served(client):
    png = b"\x89PNG\r\n\x1a\n" + b"0" * 64
    r = _register(client, email="img@example.com", files={"profileImage": ("me.png", png, "image/png")})
    assert r.status_code == 201, r.text
    user = r.json()["user"]

    url = user["profileImageUrl"]
    assert url.startswith(f"http://testserver/uploads/profile-images/{user['id']}/")
    assert url.endswith(".png")
    assert _local_path(url).read_bytes() == png

    served = client.get(url.replace("http://testserver", ""))
    assert served.status_code == 200
    assert served.content == png


def test_profile_image_must_be_an_image(client):
    r = _register(client, email="bad@example.com", files={"profileImage": ("me.txt", b"hello", "text/plain")})
    assert r.status_code == 400, r.text
    assert r.json()["success"] is False


def test_resume_type_is_checked(client):
    r = _register(client, email="exe@example.com", files={"resume": ("cv.exe", b"MZ", "application/octet-stream")})
    assert r.status_code == 400, r.text


def test_oversized_upload_is_413(client):
    big = b"0" * (3 * 1024 * 1024 + 1)
    r = _register(client, email="big@example.com", files={"profileImage": ("big.png", big, "image/png")})
    assert r.status_code == 413, r.text
    # Nothing was persisted for the rejected registration.
    assert client.post("/auth/login", json={"email": "big@example.com", "password": "Testpass123!"}).status_code == 401


def test_empty_upload_is_rejected(client):
    r = _register(client, email="empty@example.com", files={"resume": ("cv.pdf", b"", "application/pdf")})
    assert r.status_code == 400, r.text


def test_profile_update_replaces_resume(client):
    token = _register(client, email="cv@example.com").json()["token"]

    r = client.patch(
        "/auth/profile",
        headers=_auth_headers(token),
        files={"resume": ("cv.pdf", b"%PDF-1.4 v2", "application/pdf")},
    )
    assert r.status_code == 200, r.text
    url = r.json()["user"]["resumeUrl"]
    assert "/uploads/resumes/" in url
    assert _local_path(url).read_bytes() == b"%PDF-1.4 v2"


def test_remote_storage_put(client, monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = request.content
        return httpx.Response(200)

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        object_storage.httpx,
        "AsyncClient",
        lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
    )
    monkeypatch.setattr(object_storage, "STORAGE_UPLOAD_URL", "https://storage.example.com/bucket")
    monkeypatch.setattr(object_storage, "STORAGE_PUBLIC_URL", "https://cdn.example.com/bucket")
    monkeypatch.setattr(object_storage, "STORAGE_API_KEY", "secret-key")

    r = _register(client, email="remote@example.com", files={"resume": ("cv.pdf", b"%PDF remote", "application/pdf")})
    assert r.status_code == 201, r.text
    user = r.json()["user"]

    assert seen["method"] == "PUT"
    assert seen["url"].startswith(f"https://storage.example.com/bucket/resumes/{user['id']}/")
    assert seen["auth"] == "Bearer secret-key"
    assert seen["body"] == b"%PDF remote"
    assert user["resumeUrl"] == seen["url"].replace("https://storage.example.com", "https://cdn.example.com")


def test_remote_storage_failure_is_502(client, monkeypatch):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        object_storage.httpx,
        "AsyncClient",
        lambda **kw: real_client(transport=httpx.MockTransport(lambda request: httpx.Response(500)), **kw),
    )
    monkeypatch.setattr(object_storage, "STORAGE_UPLOAD_URL", "https://storage.example.com/bucket")

    r = _register(client, email="down@example.com", files={"resume": ("cv.pdf", b"%PDF", "application/pdf")})
    assert r.status_code == 502, r.text
    assert r.json()["error"] == "Failed to upload file. Please try again."
