"""
Centralized configuration for the sales assistant.

All settings are loaded from environment variables via .env file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    # Brand
    brand_name: str = Field(default="Consulting Desk", env="BRAND_NAME")

    # AWS / Bedrock
    aws_region: str = Field(default="us-east-1", env="AWS_REGION")
    bedrock_embed_model_id: str = Field(
        default="amazon.titan-embed-text-v2:0", env="BEDROCK_EMBED_MODEL_ID"
    )
    bedrock_llm_model_id: str = Field(
        default="us.anthropic.claude-sonnet-4-20250514-v1:0", env="BEDROCK_LLM_MODEL_ID"
    )

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_embed_model: str = Field(default="text-embedding-3-small", env="OPENAI_EMBED_MODEL")
    openai_llm_model: str = Field(default="gpt-4.1-mini", env="OPENAI_LLM_MODEL")

    # LLM provider selection
    llm_provider: str = Field(default="openai", env="LLM_PROVIDER")  # openai | bedrock
    max_tokens: int = Field(default=400, env="MAX_TOKENS")
    temperature: float = Field(default=0.3, env="TEMPERATURE")

    # Knowledge retrieval
    knowledge_directory: str = Field(default="./knowledge", env="KNOWLEDGE_DIRECTORY")
    rag_top_k: int = Field(default=3, env="RAG_TOP_K")
    rag_min_score: float = Field(default=0.22, env="RAG_MIN_SCORE")
    rag_max_chunks: int = Field(default=2, env="RAG_MAX_CHUNKS")
    embedding_cache_size: int = Field(default=500, env="EMBEDDING_CACHE_SIZE")

    # Conversation
    history_limit: int = Field(default=15, env="HISTORY_LIMIT")
    history_window: int = Field(default=15, env="HISTORY_WINDOW")

    # WhatsApp (Meta Cloud API)
    whatsapp_api_token: Optional[str] = Field(default=None, env="WHATSAPP_API_TOKEN")
    whatsapp_phone_number_id: Optional[str] = Field(default=None, env="WHATSAPP_PHONE_NUMBER_ID")
    whatsapp_verify_token: str = Field(default="", env="WHATSAPP_VERIFY_TOKEN")
    admin_number: Optional[str] = Field(default=None, env="ADMIN_NUMBER")

    # API
    api_host: str = Field(default="0.0.0.0", env="API_HOST")
    api_port: int = Field(default=8000, env="API_PORT")
    api_title: str = Field(default="Sales Assistant API", env="API_TITLE")
    api_version: str = Field(default="1.0.0", env="API_VERSION")
    api_key: Optional[str] = Field(default=None, env="API_KEY")
    cors_origins: str = Field(default="*", env="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_bedrock(self) -> bool:
        return self.llm_provider.lower() == "bedrock"

    @property
    def embed_model_id(self) -> str:
        if self.is_bedrock:
            return self.bedrock_embed_model_id
        return self.openai_embed_model

    @property
    def llm_model_id(self) -> str:
        if self.is_bedrock:
            return self.bedrock_llm_model_id
        return self.openai_llm_model

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def whatsapp_configured(self) -> bool:
        return bool(self.whatsapp_api_token and self.whatsapp_phone_number_id)


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
