from pathlib import Path

from pydantic_settings import BaseSettings


DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    APP_NAME: str = "Catalog Bulk Editor"

    # Shop Admin API connection
    SHOP_DOMAIN: str = ""
    SHOP_ACCESS_TOKEN: str = ""
    SHOP_API_VERSION: str = "2023-10"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Session
    SESSION_SECRET_KEY: str = "dev-session-secret"

    # Query bounds
    FILTER_PAGE_SIZE: int = 50
    VARIANTS_PAGE_SIZE: int = 100

    # The GraphQL variant mutation rejects `sku` on some API versions
    SKU_FORCE_REST: bool = False

    # Taxonomy
    TAXONOMY_FILE: Path = DATA_DIR / "taxonomy_categories.txt"
    TAXONOMY_LEGACY_FILE: Path = DATA_DIR / "taxonamy_categories.txt"
    TAXONOMY_MIN_ENTRIES: int = 20

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
