# bugzillabot/config.py
from pathlib import Path

from pydantic_settings import BaseSettings

# Later files win: a .env in the working directory overrides the user-level file.
USER_ENV_FILE = Path.home() / ".config" / "bugzillabot.env"
ENV_FILES = (str(USER_ENV_FILE), ".env")


class Settings(BaseSettings):
    # --- Profile Selection ---
    # Talks to the testing instance unless PRODUCTION is set.
    production: bool = False

    # --- Bugzilla REST Endpoints ---
    production_url: str = "https://bugs.kde.org/rest"
    production_api_key: str | None = None
    testing_url: str = "https://bugstest.kde.org/rest"
    testing_api_key: str | None = None

    # --- Transport Tuning ---
    timeout: float = 30.0
    debug: bool = False

    class Config:
        env_file = ENV_FILES
        env_prefix = "BUGZILLABOT_"

    @property
    def profile(self) -> str:
        return "production" if self.production else "testing"

    @property
    def url(self) -> str:
        """REST base URL of the selected profile."""
        return self.production_url if self.production else self.testing_url

    @property
    def api_key(self) -> str | None:
        return self.production_api_key if self.production else self.testing_api_key

    @property
    def bugzilla_url(self) -> str:
        """Web root of the selected instance, i.e. the REST URL without /rest."""
        return self.url.replace("/rest", "")


def load_settings(**overrides) -> Settings:
    """Builds settings from the environment and .env, with explicit overrides on top."""
    return Settings(**overrides)
