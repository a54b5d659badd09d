"""Tests for configuration settings."""
import pytest

from hellenika.config import Settings, settings


def test_base_directories_exist():
    """Test that all required directories exist."""
    from hellenika.config import BASE_DIR, DATA_DIR, REMEMBER_DIR

    assert BASE_DIR.exists()
    assert DATA_DIR.exists()
    assert REMEMBER_DIR.exists()


def test_settings_defaults():
    """Test default settings values."""
    assert settings.study.words_per_session == 10
    assert settings.study.choice_option_count == 4
    assert settings.study.auto_advance_seconds == 1.5
    assert settings.study.page_size == 10
    assert settings.auth.sign_in_max_attempts == 5
    assert settings.auth.sign_in_window_seconds == 60
    assert settings.auth.email_domain == "hellenika.local"


def test_test_database_is_in_memory():
    assert settings.database.url == "sqlite:///:memory:"


def test_validate_requires_token():
    test_settings = Settings()
    test_settings.bot.token = ""

    with pytest.raises(ValueError, match="TELEGRAM_BOT_TOKEN"):
        test_settings.validate()

    test_settings.validate(require_token=False)


@pytest.mark.parametrize(
    "section, name, value",
    [
        ("study", "words_per_session", 0),
        ("study", "choice_option_count", 1),
        ("study", "auto_advance_seconds", -1),
        ("study", "page_size", 0),
        ("auth", "sign_in_max_attempts", 0),
        ("auth", "username_min_length", 30),
    ],
)
def test_validate_rejects_bad_values(section, name, value):
    test_settings = Settings()
    setattr(getattr(test_settings, section), name, value)

    with pytest.raises(ValueError):
        test_settings.validate(require_token=False)


def test_mastery_policy_is_fixed():
    from hellenika.config import MASTERY_MAX_WRONG, MASTERY_MIN_CORRECT

    assert (MASTERY_MIN_CORRECT, MASTERY_MAX_WRONG) == (10, 2)
    assert not hasattr(settings, "mastery")
