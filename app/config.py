from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Upstream data source
    UPSTREAM_BASE_URL: str = "https://jsonplaceholder.typicode.com"
    UPSTREAM_TIMEOUT_SECONDS: float = 5.0

    # Size of the worker pool shared by all per-post sub-fetches
    FETCH_CONCURRENCY: int = 10

    # Cache: "memory" (process lifetime) or "redis"
    CACHE_BACKEND: str = "memory"
    REDIS_URL: str = "redis://localhost:6380/0"
    CACHE_TTL_SECONDS: int | None = None

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
