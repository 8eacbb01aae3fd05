import os
import tempfile
from pathlib import Path

# Settings are read once at import time, so the environment has to be in
# place before anything from vidtube is imported.
_WORK_DIR = Path(tempfile.mkdtemp(prefix="vidtube-tests-"))
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_INIT_MODE", "create_all")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("TEMP_DIR", str(_WORK_DIR / "temp"))
os.environ.setdefault("MEDIA_DIR", str(_WORK_DIR / "media"))
os.environ.setdefault("LOG_FILE", str(_WORK_DIR / "logs" / "test.log"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from vidtube.config import settings
from vidtube.core.database import Base, SessionLocal, engine
from vidtube.core.tokens import token_issuer
from vidtube.services.asset_storage import LocalAssetStorage
from vidtube.services.auth_service import AuthService
from vidtube.services.rate_limiter import rate_limiter

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def temp_dir() -> Path:
    path = Path(settings.get_temp_dir())
    path.mkdir(parents=True, exist_ok=True)
    for leftover in path.iterdir():
        leftover.unlink()
    return path


@pytest.fixture()
def media_dir() -> Path:
    path = Path(settings.get_media_dir())
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture()
def make_upload(temp_dir):
    """Write a fake image into the temp dir, as the upload route would"""
    counter = {"n": 0}

    def _make(suffix: str = ".png") -> str:
        counter["n"] += 1
        path = temp_dir / f"upload-{counter['n']}{suffix}"
        path.write_bytes(PNG_BYTES)
        return str(path)

    return _make


@pytest.fixture()
def storage(tmp_path) -> LocalAssetStorage:
    return LocalAssetStorage(media_dir=str(tmp_path / "media"), base_url="/media")


@pytest.fixture()
def service(storage) -> AuthService:
    return AuthService(token_issuer, storage)


@pytest.fixture()
def register_alice(db, service, make_upload):
    def _register(password: str = "secret123"):
        return service.register(
            db,
            username="alice",
            email="alice@x.com",
            fullname="Alice A",
            password=password,
            avatar_path=make_upload(),
        )

    return _register


@pytest.fixture()
def client(db, temp_dir, media_dir):
    rate_limiter.reset()
    from vidtube.main import app

    # Session cookies are Secure, so talk to the app over https
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client
