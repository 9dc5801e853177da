from synaptic.application.config import AppSettings
from synaptic.domain.errors import ConfigurationError


def test_provider_name_is_normalized() -> None:
    settings = AppSettings(llm_provider=" Google-GenAI ", _env_file=None)

    assert settings.llm_provider == "google_genai"


def test_api_key_aliases_are_read_from_environment(monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")

    settings = AppSettings(_env_file=None)

    assert settings.require_api_key() == "gemini-key"


def test_missing_api_key_names_the_variable(monkeypatch) -> None:
    for name in ("GOOGLE_API_KEY", "GEMINI_API_KEY", "LLM_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    settings = AppSettings(llm_provider="openai", _env_file=None)

    try:
        settings.require_api_key()
    except ConfigurationError as error:
        assert error.config_key == "OPENAI_API_KEY"
        assert "OPENAI_API_KEY" in str(error)
    else:
        raise AssertionError("Expected ConfigurationError for a missing API key.")


def test_resolve_model_prefers_override_then_shared_model() -> None:
    settings = AppSettings(
        llm_provider="openai",
        openai_api_key="test",
        openai_model="gpt-4o",
        _env_file=None,
    )

    assert settings.resolve_model("gpt-4.1") == "gpt-4.1"
    assert settings.resolve_model() == "gpt-4o"
    assert settings.model_copy(update={"llm_model": "shared"}).resolve_model() == "shared"


def test_log_level_is_upper_cased(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert AppSettings(_env_file=None).log_level == "DEBUG"
