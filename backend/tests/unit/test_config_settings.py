"""Unit tests for application settings configuration."""

from pathlib import Path

from app.config import Settings


def test_settings_uses_backend_env_file_independent_of_cwd():
    """Settings should always include backend/.env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_backend_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_backend_env in normalized
    assert str(Path(".env")) in normalized



def test_settings_defaults(monkeypatch, tmp_path):
    """Defaults match the ingestion and retrieval constants."""
    monkeypatch.chdir(tmp_path)
    for name in ("CHUNK_SIZE", "CHUNK_OVERLAP", "RETRIEVAL_TOP_K", "EMBEDDING_DIMENSIONS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.chunk_size == 1000
    assert settings.chunk_overlap == 200
    assert settings.retrieval_top_k == 3
    assert settings.embedding_dimensions == 768
    assert settings.embedding_batch_size == 10


def test_runtime_overrides_are_merged(monkeypatch, tmp_path):
    """data/settings.json overrides whitelisted keys only."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RETRIEVAL_TOP_K", raising=False)
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "settings.json").write_text(
        '{"retrieval_top_k": 5, "chunk_size": 10}', encoding="utf-8"
    )

    settings = Settings(_env_file=None)

    assert settings.retrieval_top_k == 5
    assert settings.chunk_size == 1000
