"""Service configuration loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    cors_allowed_origins: str = "*"
    sentry_dsn: str | None = None
    request_id_header: str = "X-Request-ID"
    hsts_max_age_seconds: int = 31536000

    # Cloudant document store
    cloudant_url: str = "http://localhost:5984"
    cloudant_api_key: str | None = None
    cloudant_db: str = "books"
    cloudant_search_ddoc: str = "book_search"
    cloudant_search_index: str = "books"
    store_timeout_seconds: float = 30.0
    store_connect_retries: int = 3

    # IBM Cloud IAM (shared by store and renderer)
    iam_token_url: str = "https://iam.cloud.ibm.com/identity/token"

    # watsonx.ai renderer
    ibm_url: str = "https://us-south.ml.cloud.ibm.com"
    ibm_api_key: str | None = None
    project_id: str | None = None
    renderer_model_id: str = "ibm/granite-3-3-8b-instruct"
    renderer_max_new_tokens: int = 400
    renderer_timeout_seconds: float = 60.0

    # Embeddings
    embed_model: str = "BAAI/bge-small-en-v1.5"
    embed_device: str = "cpu"
    embed_batch_size: int = 64
    embed_backfill_on_startup: bool = True

    # Ranking
    top_n: int = 5
    semantic_top_k: int = 20
    lexical_limit: int = 20
    synonym_min_count: int = 2
    synonym_cap: int = 6

    # Import
    books_json_path: Path = Path("books.json")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        if self.cors_allowed_origins.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def hsts_enabled(self) -> bool:
        """HSTS only when serving production traffic over TLS."""
        return not self.debug and self.environment == "production" and self.hsts_max_age_seconds > 0


settings = Settings()
