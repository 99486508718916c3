"""Application configuration settings."""

from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "CodePrep Assessments"
    debug: bool = True

    # Database
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = base_dir / "data"
    database_url: str = f"sqlite+aiosqlite:///{data_dir / 'codeprep.db'}"
    store_batch_limit: int = 30  # max ids per IN query

    # Judge0 execution service
    judge0_api_url: str = "https://judge0-ce.p.rapidapi.com"
    judge0_api_key: str | None = None
    judge0_api_host: str = "judge0-ce.p.rapidapi.com"
    execution_timeout_seconds: float = 15.0
    language_cache_ttl_seconds: float = 300.0

    # Proctoring
    max_violations: int = 3
    violation_grace_seconds: float = 1.5
    violation_coalesce_seconds: float = 0.0  # 0 = count every signal

    # Scoring
    default_coding_mark: float = 10
    default_mcq_mark: float = 1
    score_precision: int = 2

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
