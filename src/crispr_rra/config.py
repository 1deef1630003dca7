from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: str = "development"
    permutations: int = 1000
    seed: Optional[int] = None
    max_workers: int = 1
    batch_size: int = 250
    control_label: Optional[str] = None

    class Config:
        env_file = ".env"
        env_prefix = "CRISPR_RRA_"


settings = Settings()
