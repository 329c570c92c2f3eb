from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_name: str = "Learning Lab"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # Generation provider: "gemini" (default) or "openai"
    llm_provider: str = "gemini"

    # Gemini
    gemini_api_key: str = ""
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "imagen-3.0-generate-002"

    # OpenAI (alternative provider)
    openai_api_key: str = ""
    openai_text_model: str = "gpt-4o-mini"
    openai_image_model: str = "gpt-image-1"

    # Exercise generation
    exercise_max_attempts: int = 3
    debug_llm_prompts: bool = False

    # CORS
    frontend_url: str = "http://localhost:5173"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @model_validator(mode="after")
    def _require_provider_key(self) -> "Settings":
        if self.llm_provider not in ("gemini", "openai"):
            raise ValueError(f"Unsupported LLM_PROVIDER: {self.llm_provider!r}")
        if self.llm_provider == "gemini" and not self.gemini_api_key:
            raise ValueError("GEMINI_API_KEY environment variable not set.")
        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY environment variable not set.")
        if self.exercise_max_attempts < 1:
            raise ValueError("EXERCISE_MAX_ATTEMPTS must be at least 1")
        return self

    @property
    def text_model(self) -> str:
        if self.llm_provider == "openai":
            return self.openai_text_model
        return self.gemini_text_model

    @property
    def image_model(self) -> str:
        if self.llm_provider == "openai":
            return self.openai_image_model
        return self.gemini_image_model


@lru_cache
def get_settings() -> Settings:
    return Settings()
