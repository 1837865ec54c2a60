"""Unit tests for application settings configuration."""

from pathlib import Path

from bac_guide.config import Settings


def test_settings_uses_backend_env_file_independent_of_cwd():
    """Settings should always include backend/.env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_backend_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_backend_env in normalized
    assert str(Path(".env")) in normalized


def test_pipeline_defaults():
    settings = Settings(_env_file=None)

    assert settings.chunk_size == 500
    assert settings.chunk_min_chars == 20
    assert settings.retrieval_top_k == 5
    assert settings.embedding_dimensions == 1536
    assert settings.embedding_delay_seconds == 0.1
    assert settings.embedding_pause_every == 10
    assert settings.embedding_pause_seconds == 1.0
    assert settings.generation_temperature == 0.7
    assert settings.generation_max_tokens == 1000


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CHAT_MODEL", "anthropic/claude-3-haiku")
    monkeypatch.setenv("RETRIEVAL_TOP_K", "8")
    monkeypatch.setenv("DOCUMENTS_DIR", "/srv/pdfs")

    settings = Settings(_env_file=None)

    assert settings.chat_model == "anthropic/claude-3-haiku"
    assert settings.retrieval_top_k == 8
    assert settings.documents_dir == "/srv/pdfs"
