"""
Configuration management - Environment variables and application settings

Centralizes configuration loading from .env files and environment variables.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


class Config:
    """Application configuration from environment variables"""

    _loaded = False

    @classmethod
    def load(cls):
        """Load environment variables from .env file"""
        if not cls._loaded:
            # Find .env file (look in project root)
            project_root = Path(__file__).parent.parent
            env_file = project_root / '.env'

            if env_file.exists():
                load_dotenv(env_file)
            cls._loaded = True

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        Config.load()
        return os.getenv(key, default)

    # Graph store selection
    @staticmethod
    def graph_store() -> str:
        return Config.get("GRAPH_STORE", "postgres").lower()

    @staticmethod
    def graph_schema() -> str:
        return Config.get("GRAPH_SCHEMA", "frameworx")

    # PostgreSQL Configuration
    @staticmethod
    def postgres_host() -> str:
        return Config.get("POSTGRES_HOST", "localhost")

    @staticmethod
    def postgres_port() -> int:
        return int(Config.get("POSTGRES_PORT", "5432"))

    @staticmethod
    def postgres_db() -> str:
        return Config.get("POSTGRES_DB", "knowledge_graph")

    @staticmethod
    def postgres_user() -> str:
        return Config.get("POSTGRES_USER", "admin")

    @staticmethod
    def postgres_password() -> Optional[str]:
        return Config.get("POSTGRES_PASSWORD")

    @staticmethod
    def postgres_statement_timeout_ms() -> int:
        return int(Config.get("POSTGRES_STATEMENT_TIMEOUT_MS", "30000"))

    @staticmethod
    def postgres_connect_timeout() -> int:
        return int(Config.get("POSTGRES_CONNECT_TIMEOUT", "10"))

    # Embedding Configuration
    @staticmethod
    def openai_api_key() -> Optional[str]:
        return Config.get("OPENAI_API_KEY")

    @staticmethod
    def openai_embedding_model() -> str:
        return Config.get("OPENAI_EMBEDDING_MODEL", "text-embedding-ada-002")

    @staticmethod
    def embedding_provider() -> str:
        """Embedding provider name; defaults to openai only when a key is present."""
        default = "openai" if Config.openai_api_key() else "none"
        return Config.get("EMBEDDING_PROVIDER", default).lower()

    # Server
    @staticmethod
    def log_level() -> str:
        return Config.get("LOG_LEVEL", "INFO")

    @staticmethod
    def allowed_origins() -> list:
        raw = Config.get("ALLOWED_ORIGINS", "")
        return [o.strip() for o in raw.split(",") if o.strip()] or ["http://localhost:3000"]
