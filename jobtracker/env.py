import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


@dataclass
class Settings:
    db_path: Path
    log_level: str
    log_dir: Path
    export_dir: Path


def get_settings() -> Settings:
    """Settings from JOBTRACKER_* environment variables."""
    return Settings(
        db_path=Path(os.getenv("JOBTRACKER_DB_PATH", "data/jobs.db")),
        log_level=os.getenv("JOBTRACKER_LOG_LEVEL", "INFO").upper(),
        log_dir=Path(os.getenv("JOBTRACKER_LOG_DIR", "logs")),
        export_dir=Path(os.getenv("JOBTRACKER_EXPORT_DIR", ".")),
    )
