"""
Configuration Management for Second Brain Retrieval

Loads configuration from ~/.secondbrain/config.json, a local .env file and
environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger("secondbrain.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".secondbrain"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration"""
    provider: str = "openai"  # "openai" or "ollama"
    model: str = "text-embedding-3-small"
    dimensions: int = 1536
    timeout: float = 15.0  # seconds; the provider call is never retried
    openai_api_key: str = ""
    ollama_url: str = "http://localhost:11434"


@dataclass
class StoreConfig:
    """Memory store configuration"""
    backend: str = "memory"  # "memory" or "pgvector"
    database_url: str = ""


@dataclass
class SearchConfig:
    """Ranking and retrieval parameters"""
    default_limit: int = 20
    threshold: float = 0.5
    overfetch_factor: int = 3
    overfetch_ceiling: int = 100
    category_boost: float = 3.0
    tag_boost: float = 1.5


@dataclass
class CatalogConfig:
    """Live category/tag catalog caching"""
    ttl_seconds: float = 30.0  # 0 disables caching


@dataclass
class ServerConfig:
    """HTTP search API configuration"""
    host: str = "0.0.0.0"
    port: int = 8090


@dataclass
class SecondBrainConfig:
    """Main configuration"""
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    """Parse embedding section from config dict"""
    embedding_data = data.get("embedding", {})
    return EmbeddingConfig(
        provider=embedding_data.get("provider", "openai"),
        model=embedding_data.get("model", "text-embedding-3-small"),
        dimensions=embedding_data.get("dimensions", 1536),
        timeout=embedding_data.get("timeout", 15.0),
        openai_api_key=embedding_data.get("openai_api_key", ""),
        ollama_url=embedding_data.get("ollama_url", "http://localhost:11434"),
    )


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    return StoreConfig(
        backend=store_data.get("backend", "memory"),
        database_url=store_data.get("database_url", ""),
    )


def _parse_search_config(data: dict) -> SearchConfig:
    """Parse search section from config dict"""
    search_data = data.get("search", {})
    return SearchConfig(
        default_limit=search_data.get("default_limit", 20),
        threshold=search_data.get("threshold", 0.5),
        overfetch_factor=search_data.get("overfetch_factor", 3),
        overfetch_ceiling=search_data.get("overfetch_ceiling", 100),
        category_boost=search_data.get("category_boost", 3.0),
        tag_boost=search_data.get("tag_boost", 1.5),
    )


def _parse_catalog_config(data: dict) -> CatalogConfig:
    catalog_data = data.get("catalog", {})
    return CatalogConfig(ttl_seconds=catalog_data.get("ttl_seconds", 30.0))


def _parse_server_config(data: dict) -> ServerConfig:
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 8090),
    )


def load_config() -> SecondBrainConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (including a local .env file)
    2. Config file (~/.secondbrain/config.json)
    3. Default values
    """
    load_dotenv()
    config = SecondBrainConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.embedding = _parse_embedding_config(data)
            config.store = _parse_store_config(data)
            config.search = _parse_search_config(data)
            config.catalog = _parse_catalog_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    if os.getenv("SECONDBRAIN_EMBEDDING_PROVIDER"):
        config.embedding.provider = os.getenv("SECONDBRAIN_EMBEDDING_PROVIDER")
    if os.getenv("EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("EMBEDDING_MODEL")
    if os.getenv("EMBEDDING_DIMENSIONS"):
        config.embedding.dimensions = int(os.getenv("EMBEDDING_DIMENSIONS"))
    if os.getenv("EMBEDDING_TIMEOUT"):
        config.embedding.timeout = float(os.getenv("EMBEDDING_TIMEOUT"))
    if os.getenv("OLLAMA_API_URL"):
        config.embedding.ollama_url = os.getenv("OLLAMA_API_URL")
    if os.getenv("OPENAI_API_KEY"):
        config.embedding.openai_api_key = os.getenv("OPENAI_API_KEY")
        config._env_sourced_keys.add("openai_api_key")

    if os.getenv("SECONDBRAIN_STORE"):
        config.store.backend = os.getenv("SECONDBRAIN_STORE")
    if os.getenv("DATABASE_URL"):
        config.store.database_url = os.getenv("DATABASE_URL")
        config._env_sourced_keys.add("database_url")

    if os.getenv("SEARCH_THRESHOLD"):
        config.search.threshold = float(os.getenv("SEARCH_THRESHOLD"))
    if os.getenv("SEARCH_LIMIT"):
        config.search.default_limit = int(os.getenv("SEARCH_LIMIT"))
    if os.getenv("CATALOG_TTL"):
        config.catalog.ttl_seconds = float(os.getenv("CATALOG_TTL"))
    if os.getenv("SECONDBRAIN_PORT"):
        config.server.port = int(os.getenv("SECONDBRAIN_PORT"))

    return config


def save_config(config: SecondBrainConfig) -> None:
    """Save configuration to file.

    Secrets that were sourced from environment variables are written as
    empty strings so that they are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    data = {
        "embedding": {
            "provider": config.embedding.provider,
            "model": config.embedding.model,
            "dimensions": config.embedding.dimensions,
            "timeout": config.embedding.timeout,
            "openai_api_key": "" if "openai_api_key" in env_sourced else config.embedding.openai_api_key,
            "ollama_url": config.embedding.ollama_url,
        },
        "store": {
            "backend": config.store.backend,
            "database_url": "" if "database_url" in env_sourced else config.store.database_url,
        },
        "search": {
            "default_limit": config.search.default_limit,
            "threshold": config.search.threshold,
            "overfetch_factor": config.search.overfetch_factor,
            "overfetch_ceiling": config.search.overfetch_ceiling,
            "category_boost": config.search.category_boost,
            "tag_boost": config.search.tag_boost,
        },
        "catalog": {
            "ttl_seconds": config.catalog.ttl_seconds,
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
