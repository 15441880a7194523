from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # GitHub API
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    request_timeout: int = 30
    max_retries: int = 3

    # Working trees
    git_remote_url: str = "https://github.com"
    git_root: str = "git"
    commit_author_name: str = "benchbot"
    commit_author_email: str = "benchbot@users.noreply.github.com"
    commit_message: str = "merge master and add benchmark results"

    # Job execution
    command_timeout: Optional[float] = 4 * 60 * 60  # seconds per external process
    lock_timeout: Optional[float] = None  # wait forever for our turn
    publish_retry_delay: float = 3.0  # object store needs a moment after blob uploads

    # Storage
    database_path: str = "benchbot.db"

    # Logging
    log_level: str = "INFO"

    # App settings
    app_name: str = "Benchmark Bot API"
    debug: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
