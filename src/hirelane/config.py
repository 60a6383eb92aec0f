from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Hirelane"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8790
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/hirelane.db"
    data_dir: Path = Path("./data")

    seed_job_count: int = 25
    seed_candidate_count: int = 1000
    seed_assessment_count: int = 3
    seed_random_seed: int | None = None

    mutation_delay_ms: int = 500
    reorder_failure_rate: float = 0.1
    stage_failure_rate: float = 0.1
    write_failure_rate: float = 0.1
    fault_random_seed: int | None = None

    api_base_url: str = "http://hirelane.local"
    timeline_author: str = "HR Team"
    cors_origins: str = "http://127.0.0.1:8790"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("reorder_failure_rate", "stage_failure_rate", "write_failure_rate")
    @classmethod
    def validate_rate(cls, value: float) -> float:
        if value < 0 or value > 1:
            raise ValueError("failure rate must be between 0 and 1")
        return value

    @field_validator("mutation_delay_ms")
    @classmethod
    def validate_delay(cls, value: int) -> int:
        if value < 0:
            raise ValueError("mutation_delay_ms must not be negative")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def mutation_delay_sec(self) -> float:
        return self.mutation_delay_ms / 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
