# services/settings.py
import os
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _database_url_from_env() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    db_user = os.getenv("POSTGRES_USER")
    db_pass = os.getenv("POSTGRES_PASSWORD")
    db_host = os.getenv("POSTGRES_HOST", "localhost")
    db_port = os.getenv("POSTGRES_PORT", "5432")
    db_name = os.getenv("POSTGRES_DB")
    if not all([db_user, db_pass, db_name]):
        raise ValueError("Database credentials must be provided via DATABASE_URL or POSTGRES_* environment variables")

    return f"postgresql://{quote_plus(db_user)}:{quote_plus(db_pass)}@{db_host}:{db_port}/{quote_plus(db_name)}"


@dataclass(frozen=True)
class Settings:
    database_url: str
    app_env: str = "local"

    # Oracle
    llm_provider: str = "openai"
    extraction_model: Optional[str] = None
    consolidation_model: Optional[str] = None

    # Corpus
    papers_dir: str = "Research Papers"

    # Rate limits (seconds)
    extraction_delay: float = 4.0
    chunk_delay: float = 3.0
    pass_delay: float = 2.0

    # Themes carry more context per item than subthemes
    theme_chunk_size: int = 30
    subtheme_chunk_size: int = 40
    max_consolidation_passes: Optional[int] = None

    allowed_origins: tuple = ()


def load_settings() -> Settings:
    """
    Reads .env.local (APP_ENV=local, the default) or .env, then the process
    environment. Raises ValueError when the store cannot be configured.
    """
    env = os.getenv("APP_ENV", "local")
    if env == "local":
        load_dotenv(".env.local")
    else:
        load_dotenv(".env")
    logger.info(f"🔧 Loaded environment: {env}")

    if env == "local":
        origins = ("http://localhost:3000", "http://localhost:5173")
    else:
        origins_str = os.getenv("ALLOWED_ORIGINS", "")
        origins = tuple(origin.strip() for origin in origins_str.split(",") if origin.strip())

    return Settings(
        database_url=_database_url_from_env(),
        app_env=env,
        llm_provider=os.getenv("LLM_PROVIDER", "openai"),
        extraction_model=os.getenv("EXTRACTION_MODEL") or None,
        consolidation_model=os.getenv("CONSOLIDATION_MODEL") or None,
        papers_dir=os.getenv("PAPERS_DIR", "Research Papers"),
        extraction_delay=_env_float("EXTRACTION_DELAY_SECONDS", 4.0),
        chunk_delay=_env_float("CHUNK_DELAY_SECONDS", 3.0),
        pass_delay=_env_float("PASS_DELAY_SECONDS", 2.0),
        theme_chunk_size=_env_int("THEME_CHUNK_SIZE", 30),
        subtheme_chunk_size=_env_int("SUBTHEME_CHUNK_SIZE", 40),
        max_consolidation_passes=_env_int("MAX_CONSOLIDATION_PASSES", None),
        allowed_origins=origins,
    )
