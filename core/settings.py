from __future__ import annotations
import os
import yaml
from pathlib import Path
from typing import List
from pydantic import BaseModel

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"


class AppConfig(BaseModel):
    name: str
    environment: str
    school_id: int = 1


class DBConfig(BaseModel):
    url: str


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ResultsConfig(BaseModel):
    passing_score: float = 50
    inactive_statuses: List[str] = ["Withdrawn", "Graduated", "Expelled", "Inactive"]


class Settings(BaseModel):
    app: AppConfig
    db: DBConfig
    logging: LoggingConfig = LoggingConfig()
    results: ResultsConfig = ResultsConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    if path is None:
        path = os.environ.get("SCHOOL_CONSOLE_SETTINGS") or DEFAULT_SETTINGS_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    db_data = dict(data["db"])
    # DATABASE_URL wins over the file so deployments don't need a custom YAML
    if os.environ.get("DATABASE_URL"):
        db_data["url"] = os.environ["DATABASE_URL"]

    return Settings(
        app=AppConfig(**data["app"]),
        db=DBConfig(**db_data),
        logging=LoggingConfig(**(data.get("logging") or {})),
        results=ResultsConfig(**(data.get("results") or {})),
    )
