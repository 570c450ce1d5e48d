"""
Unit tests for Settings.
"""

from kakeibo.config import Settings


class TestSettings:
    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("KAKEIBO_BACKEND_URL", "https://project.backend.test/")
        monkeypatch.setenv("KAKEIBO_BACKEND_ANON_KEY", "anon")
        monkeypatch.setenv("KAKEIBO_TRANSACTIONS_CACHE_TTL", "30")

        settings = Settings()

        assert settings.backend_configured is True
        assert settings.rest_url == "https://project.backend.test/rest/v1"
        assert settings.auth_url == "https://project.backend.test/auth/v1"
        assert settings.transactions_cache_ttl == 30

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("KAKEIBO_BACKEND_URL", raising=False)
        monkeypatch.delenv("KAKEIBO_BACKEND_ANON_KEY", raising=False)

        settings = Settings(_env_file=None)

        assert settings.backend_configured is False
        assert settings.default_cache_ttl == 300
        assert settings.cache_max_entries == 0
