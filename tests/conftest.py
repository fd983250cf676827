import asyncio
import shutil
import uuid
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient

from tubely.api import deps
from tubely.core.config import get_settings
from tubely.core.db import Base, create_engine
from tubely.main import create_app
from tubely.media import MediaProbeError, MediaToolkit, MediaTranscodeError, StreamInfo

JWT_SECRET = "test-secret"
JWT_ISSUER = "tubely-test"
JWT_AUDIENCE = "tubely"

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + b"\x00" * 64


class FakeMediaToolkit(MediaToolkit):
    """In-memory stand-in for ffprobe/ffmpeg."""

    def __init__(self, width: int | None = 1920, height: int | None = 1080):
        self.streams = [StreamInfo(index=0, type="video", codec="h264", width=width, height=height)]
        self.probe_error: Exception | None = None
        self.faststart_error: Exception | None = None
        self.probed: list[tuple[Path, bytes]] = []
        self.faststarted: list[Path] = []

    def probe(self, path: Path) -> list[StreamInfo]:
        self.probed.append((path, path.read_bytes()))
        if self.probe_error:
            raise self.probe_error
        return list(self.streams)

    def faststart(self, path: Path) -> Path:
        self.faststarted.append(path)
        if self.faststart_error:
            raise self.faststart_error
        output = path.with_name(path.name + ".processing")
        shutil.copyfile(path, output)
        with output.open("ab") as handle:
            handle.write(b"moov-moved")
        return output


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default Tubely environment bootstrap fixture",
    )


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path):
    if request.node.get_closest_marker("no_default_env"):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()
        return
    db_path = tmp_path / "tubely_test.db"
    staging = tmp_path / "staging"
    staging.mkdir()

    monkeypatch.setenv("TUBELY_ENV", "test")
    monkeypatch.setenv("TUBELY_LOG_LEVEL", "debug")
    monkeypatch.setenv("TUBELY_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("TUBELY_ASSETS_ROOT", str(tmp_path / "assets"))
    monkeypatch.setenv("TUBELY_TMP_DIR", str(staging))
    monkeypatch.setenv("TUBELY_PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "local")
    monkeypatch.setenv("TUBELY_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("TUBELY_JWT_ISSUER", JWT_ISSUER)
    monkeypatch.setenv("TUBELY_JWT_AUDIENCE", JWT_AUDIENCE)
    for name in ("TUBELY_S3_BUCKET", "TUBELY_VIDEO_BASE_URL", "TUBELY_FASTSTART_ENABLED"):
        monkeypatch.delenv(name, raising=False)

    get_settings.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_setup())

    yield

    async def _teardown() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    asyncio.run(_teardown())
    get_settings.cache_clear()


@pytest.fixture()
def toolkit() -> FakeMediaToolkit:
    return FakeMediaToolkit()


@pytest.fixture()
def app(configure_environment, toolkit):
    application = create_app()
    application.dependency_overrides[deps.get_media_toolkit] = lambda: toolkit
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def assets_root(tmp_path) -> Path:
    return tmp_path / "assets"


@pytest.fixture()
def staging_dir(tmp_path) -> Path:
    return tmp_path / "staging"


def build_token(user_id: uuid.UUID | str, *, scopes: list[str] | None = None, secret: str = JWT_SECRET, **claims) -> str:
    payload = {"sub": str(user_id), "iss": JWT_ISSUER, "aud": JWT_AUDIENCE, **claims}
    if scopes:
        payload["scopes"] = scopes
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(user_id: uuid.UUID | str, **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token(user_id, **kwargs)}"}


@pytest.fixture()
def owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def owner_headers(owner_id) -> dict[str, str]:
    return bearer(owner_id)


@pytest.fixture()
def stranger_headers() -> dict[str, str]:
    return bearer(uuid.uuid4())


@pytest.fixture()
def video(client, owner_headers) -> dict:
    resp = client.post("/v1/videos", json={"title": "Boots in the wild"}, headers=owner_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def files_in(root: Path) -> list[Path]:
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file())


__all__ = [
    "FakeMediaToolkit",
    "MediaProbeError",
    "MediaTranscodeError",
    "PNG_BYTES",
    "JPEG_BYTES",
    "MP4_BYTES",
    "bearer",
    "build_token",
    "files_in",
]
