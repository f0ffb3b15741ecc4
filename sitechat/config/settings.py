"""Application settings loaded from environment variables via pydantic-settings.

Values come from (highest priority first) environment variables, the
project-root ``.env`` file, then the defaults below.  Field ``openai_api_key``
maps to env var ``OPENAI_API_KEY``; list fields such as ``nav_labels`` take
a JSON array (``NAV_LABELS='["Home", "Support"]'``).

The OpenAI client is pointed at any OpenAI-compatible endpoint through
``OPENAI_BASE_URL``.  For Gemini use
``https://generativelanguage.googleapis.com/v1beta/openai/`` with
``OPENAI_TEXT_MODEL=gemini-2.0-flash-lite`` and
``OPENAI_EMBEDDING_MODEL=gemini-embedding-001``.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NAV_LABELS: list[str] = [
    "Card",
    "How It Works",
    "Reviews",
    "Support",
    "App",
    "Who We Are",
    "Sign In",
    "About Us",
    "Contact Us",
    "Home",
]

DEFAULT_PERSONA = (
    "You are a helpful customer-support assistant. Answer the question using "
    "only the information in the context below. If the context does not "
    "contain the answer, say that you do not know."
)


class Settings(BaseSettings):
    """sitechat application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Generation / embedding model (OpenAI-compatible) ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # empty = api.openai.com
    openai_text_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-large"

    # === Vector store ===
    vector_store_backend: str = "chromadb"  # chromadb | pinecone
    vector_namespace: str = "default"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "sitechat_corpus"
    pinecone_api_key: str = ""
    pinecone_index: str = "company-data"
    pinecone_host: str = ""

    # === RAG ===
    rag_top_k: int = 30
    chunk_max_size: int = 700
    corpus_category: str = "website"
    nav_labels: list[str] = list(DEFAULT_NAV_LABELS)

    # === Ingestion throughput ===
    upsert_batch_size: int = 100
    embedding_rate_per_second: float = 10.0
    upsert_rate_per_second: float = 1.0

    # === Completion ===
    completion_max_tokens: int = 150
    completion_temperature: float = 0.7
    query_rewrite_enabled: bool = False
    assistant_persona: str = DEFAULT_PERSONA

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_missing_credentials(self) -> list[str]:
        """Return env var names required by the configured backends but left empty."""
        missing: list[str] = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if self.vector_store_backend == "pinecone" and not self.pinecone_api_key:
            missing.append("PINECONE_API_KEY")
        return missing
