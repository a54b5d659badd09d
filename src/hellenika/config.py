"""Configuration settings for Hellenika."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
REMEMBER_DIR = DATA_DIR / "remember"

# Mastery policy
MASTERY_MIN_CORRECT = 10
MASTERY_MAX_WRONG = 2


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        REMEMBER_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    remember_dir: Path = REMEMBER_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///hellenika.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")


@dataclass
class AuthSettings:
    """Sign-up, sign-in and rate limiting settings."""
    email_domain: str = os.getenv("AUTH_EMAIL_DOMAIN", "hellenika.local")
    username_min_length: int = int(os.getenv("USERNAME_MIN_LENGTH", "3"))
    username_max_length: int = int(os.getenv("USERNAME_MAX_LENGTH", "20"))
    password_min_length: int = int(os.getenv("PASSWORD_MIN_LENGTH", "6"))
    sign_in_max_attempts: int = int(os.getenv("SIGN_IN_MAX_ATTEMPTS", "5"))
    sign_in_window_seconds: float = float(os.getenv("SIGN_IN_WINDOW_SECONDS", "60"))


@dataclass
class StudySettings:
    """Activity and browsing settings."""
    words_per_session: int = int(os.getenv("WORDS_PER_SESSION", "10"))
    choice_option_count: int = int(os.getenv("CHOICE_OPTION_COUNT", "4"))
    auto_advance_seconds: float = float(os.getenv("AUTO_ADVANCE_SECONDS", "1.5"))
    page_size: int = int(os.getenv("PAGE_SIZE", "10"))


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_auth_settings() -> AuthSettings:
    """Get auth settings."""
    return AuthSettings()


def get_study_settings() -> StudySettings:
    """Get study settings."""
    return StudySettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    auth: AuthSettings = field(default_factory=get_auth_settings)
    study: StudySettings = field(default_factory=get_study_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self, require_token: bool = True) -> None:
        """Validate settings and raise ValueError if invalid."""
        if require_token and not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        if self.study.words_per_session < 1:
            raise ValueError("WORDS_PER_SESSION must be positive")

        if self.study.choice_option_count < 2:
            raise ValueError("CHOICE_OPTION_COUNT must be at least 2")

        if self.study.auto_advance_seconds < 0:
            raise ValueError("AUTO_ADVANCE_SECONDS cannot be negative")

        if self.study.page_size < 1:
            raise ValueError("PAGE_SIZE must be positive")

        if self.auth.sign_in_max_attempts < 1:
            raise ValueError("SIGN_IN_MAX_ATTEMPTS must be positive")

        if self.auth.username_min_length > self.auth.username_max_length:
            raise ValueError("USERNAME_MIN_LENGTH cannot be greater than USERNAME_MAX_LENGTH")


# Create global settings instance
settings = Settings()
