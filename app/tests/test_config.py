import pytest
from pydantic import ValidationError

from app.core.config import load_settings


@pytest.fixture
def env_dir(tmp_path, monkeypatch):
    # .env 按当前目录查找
    monkeypatch.chdir(tmp_path)
    for name in ("ENV", "CACHE_TTL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_invalid_config_falls_back_when_env_comes_from_dotenv(env_dir):
    (env_dir / ".env").write_text("ENV=prod\nCACHE_TTL=1\n", encoding="utf-8")

    s = load_settings()

    assert s.cache_ttl == 600.0


def test_invalid_config_raises_in_dev(env_dir):
    (env_dir / ".env").write_text("ENV=dev\nCACHE_TTL=1\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_settings()


def test_process_env_overrides_dotenv(env_dir, monkeypatch):
    (env_dir / ".env").write_text("ENV=dev\nCACHE_TTL=1\n", encoding="utf-8")
    monkeypatch.setenv("ENV", "prod")

    assert load_settings().cache_ttl == 600.0


def test_valid_dotenv_is_loaded(env_dir):
    (env_dir / ".env").write_text("CACHE_TTL=120\nTEMP_UNIT=fahrenheit\n", encoding="utf-8")

    s = load_settings()

    assert s.cache_ttl == 120
    assert s.temp_unit == "fahrenheit"
