from __future__ import annotations

import os
from pathlib import Path

import pytest

from tubely.core.config import get_settings


pytestmark = pytest.mark.no_default_env


@pytest.fixture()
def clean_env(monkeypatch, tmp_path: Path):
    for key in list(os.environ.keys()):
        if key.startswith("TUBELY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    before = set(os.environ)
    yield tmp_path
    # load_dotenv and the alias map write straight into os.environ.
    for key in set(os.environ) - before:
        if key.startswith("TUBELY_"):
            os.environ.pop(key)


def test_defaults(clean_env):
    settings = get_settings()
    assert settings.environment == "development"
    assert settings.storage_backend == "local"
    assert settings.faststart_enabled is True
    assert settings.max_thumbnail_bytes == 10 * 1024 * 1024
    assert settings.resolved_public_base_url == "http://localhost:8091"
    assert settings.video_storage_path == Path("assets") / "videos"


def test_dotenv_and_aliases(clean_env):
    (clean_env / ".env").write_text(
        "\n".join(
            [
                "TUBELY_ENV=staging",
                "TUBELY_DB_URL=sqlite+aiosqlite:///./staging.db",
                "TUBELY_PORT=9000",
                "TUBELY_FASTSTART_ENABLED=false",
                "TUBELY_JWT_SECRET=from-dotenv",
            ]
        )
    )
    settings = get_settings()
    assert settings.environment == "staging"
    assert settings.database_url == "sqlite+aiosqlite:///./staging.db"
    assert settings.resolved_public_base_url == "http://localhost:9000"
    assert settings.faststart_enabled is False
    assert settings.secrets.jwt_secret == "from-dotenv"


def test_production_requires_real_secret(clean_env, monkeypatch):
    monkeypatch.setenv("TUBELY_ENV", "production")
    with pytest.raises(ValueError, match="JWT secret"):
        get_settings()


def test_production_with_secret(clean_env, monkeypatch):
    monkeypatch.setenv("TUBELY_ENV", "production")
    monkeypatch.setenv("TUBELY_JWT_SECRET", "s3cr3t")
    monkeypatch.setenv("TUBELY_PUBLIC_BASE_URL", "https://tubely.example.com/")
    settings = get_settings()
    assert settings.resolved_public_base_url == "https://tubely.example.com"
