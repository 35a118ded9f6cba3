from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Banditry"
    API_V1_PREFIX: str = "/api/v1"

    # Arm file read and written by the store
    CONFIG_PATH: str = "./bandits.json"

    # Scheduling
    CONCURRENCY: int = 1
    DEFAULT_STEPS: int = 10
    BIAS_RUNTIME: bool = False
    RANDOM_SEED: int | None = None

    # Probe execution
    PROBE_TIMEOUT_SECONDS: float | None = None

    LOG_LEVEL: str = "INFO"

    model_config = {"env_prefix": "BANDITRY_", "env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
