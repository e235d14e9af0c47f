"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DB_ENV_VAR = "QUIZARCHIVE_DB"
STORAGE_ENV_VAR = "QUIZARCHIVE_STORAGE"


def _get_default_db_path() -> Path:
    """Get the default database path based on the working directory."""
    # When running from source, prefer local data/ if it exists
    local_db = Path("data/quizarchive.db")
    if local_db.exists():
        return local_db

    return Path.home() / "Documents" / "QuizArchive" / "quizarchive.db"


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    storage_dir: Path | None = None
    page_limit: int = 10
    max_tags: int = 3
    files_url: str = "/files"
    year_epoch: int = 2000

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build a config honouring ``QUIZARCHIVE_DB`` and ``QUIZARCHIVE_STORAGE``."""
        db = os.environ.get(DB_ENV_VAR)
        storage = os.environ.get(STORAGE_ENV_VAR)
        return cls(
            db_path=Path(db) if db else None,
            storage_dir=Path(storage) if storage else None,
        )

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path

    def resolve_storage_dir(self, base_dir: Path | None = None) -> Path:
        """Blob storage lives beside the database unless configured otherwise."""
        if self.storage_dir is None:
            return self.resolve_db_path(base_dir).parent / "files"
        if Path(self.storage_dir).is_absolute() or base_dir is None:
            return Path(self.storage_dir)
        return base_dir / self.storage_dir
