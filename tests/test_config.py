from pathlib import Path

from coach.analyzer import DEFAULT_CONFIG
from coach.config import load_settings


def test_defaults_from_empty_environment():
    settings = load_settings({})
    assert settings.default_provider == "groq"
    assert settings.env_keys == {"groq": "", "openai": "", "huggingface": ""}
    assert settings.data_dir == Path("data")
    assert settings.request_timeout is None
    assert settings.analysis == DEFAULT_CONFIG


def test_values_from_environment():
    settings = load_settings({
        "GROQ_API_KEY": "gsk_env",
        "DEFAULT_AI_PROVIDER": "openai",
        "COACH_DATA_DIR": "/tmp/coach",
        "COACH_LOG_LEVEL": "debug",
        "COACH_REQUEST_TIMEOUT": "15",
        "COACH_ALERT_THRESHOLD": "55",
    })
    assert settings.env_keys["groq"] == "gsk_env"
    assert settings.default_provider == "openai"
    assert settings.data_dir == Path("/tmp/coach")
    assert settings.log_level == "DEBUG"
    assert settings.request_timeout == 15.0
    assert settings.analysis.alert_threshold == 55.0
    assert settings.analysis.recommendation_threshold == DEFAULT_CONFIG.recommendation_threshold


def test_bad_numbers_fall_back_to_defaults():
    settings = load_settings({"COACH_REQUEST_TIMEOUT": "soon", "COACH_ALERT_THRESHOLD": ""})
    assert settings.request_timeout is None
    assert settings.analysis.alert_threshold == DEFAULT_CONFIG.alert_threshold
