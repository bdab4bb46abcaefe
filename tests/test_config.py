"""Tests for environment-driven settings."""

from docchat.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PARENT_CHUNK_SIZE", raising=False)
        settings = Settings(_env_file=None)

        assert settings.parent_chunk_size == 1000
        assert settings.parent_chunk_overlap == 200
        assert settings.embedding_model == "text-embedding-3-small"
        assert settings.candidate_pool_size == 100
        assert settings.max_documents == 5
        assert settings.default_top_k == 20

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("PARENT_CHUNK_SIZE", "500")
        monkeypatch.setenv("default_top_k", "7")

        settings = Settings(_env_file=None)

        assert settings.parent_chunk_size == 500
        assert settings.default_top_k == 7

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
