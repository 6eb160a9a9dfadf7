import importlib
import sys

import pytest

STRONG_SECRET = "q7Lm2Xv9Rk4Tz8Wp1Yc6Hn3Bd5Fs0GjKeUaViNo"


def reload_config_module():
    config_module = sys.modules.get("forum.config")
    if config_module:
        config_module.get_settings.cache_clear()
        sys.modules.pop("forum.config", None)
    return importlib.import_module("forum.config")


def test_missing_jwt_secret_fails_closed(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="supabase_jwt_secret|SUPABASE_JWT_SECRET"):
        config_module.get_settings()


def test_placeholder_jwt_secret_fails_closed(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "changeme-in-production-changeme-in-production")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="supabase_jwt_secret|SUPABASE_JWT_SECRET"):
        config_module.get_settings()


def test_low_entropy_jwt_secret_fails_closed(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "ab" * 20)

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="SUPABASE_JWT_SECRET entropy"):
        config_module.get_settings()


def test_relative_supabase_url_is_rejected(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "project.supabase.co")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", STRONG_SECRET)

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="SUPABASE_URL"):
        config_module.get_settings()


def test_strong_settings_pass(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co/")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", STRONG_SECRET)
    monkeypatch.setenv("ALLOWED_OAUTH_REDIRECTS", "https://forum.example.com, http://localhost:5173")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()
    settings = config_module.get_settings()

    assert settings.supabase_url == "https://project.supabase.co"
    assert settings.oauth_redirect_allowlist == ["https://forum.example.com", "http://localhost:5173"]


def test_settings_read_dotenv_file(monkeypatch, tmp_path):
    for name in ("SUPABASE_URL", "SUPABASE_JWT_SECRET", "OTP_TTL_MINUTES"):
        monkeypatch.delenv(name, raising=False)
    (tmp_path / ".env").write_text(
        f"SUPABASE_URL=https://dotenv.supabase.co\nSUPABASE_JWT_SECRET={STRONG_SECRET}\nOTP_TTL_MINUTES=3\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()
    settings = config_module.get_settings()

    assert settings.supabase_url == "https://dotenv.supabase.co"
    assert settings.otp_ttl_minutes == 3
