from functools import lru_cache

from fastapi import Depends

from learning_lab.core.config import Settings, get_settings
from learning_lab.services.exercise_generator import ExerciseGenerator
from learning_lab.services.linguistic import LinguisticService
from learning_lab.services.llm_client import GeminiClient, LLMClient, OpenAIClient
from learning_lab.services.session import SessionStore


def build_llm_client(settings: Settings) -> LLMClient:
    """Return the client for the configured llm_provider."""
    if settings.llm_provider == "openai":
        return OpenAIClient(settings.openai_api_key, debug_prompts=settings.debug_llm_prompts)
    return GeminiClient(settings.gemini_api_key, debug_prompts=settings.debug_llm_prompts)


# One client per process; routes receive it through Depends so tests can swap
# it with app.dependency_overrides.
@lru_cache
def get_llm_client() -> LLMClient:
    return build_llm_client(get_settings())


def get_exercise_generator(client: LLMClient = Depends(get_llm_client)) -> ExerciseGenerator:
    settings = get_settings()
    return ExerciseGenerator(
        client,
        model=settings.text_model,
        max_attempts=settings.exercise_max_attempts,
    )


def get_linguistic_service(client: LLMClient = Depends(get_llm_client)) -> LinguisticService:
    settings = get_settings()
    return LinguisticService(
        client,
        text_model=settings.text_model,
        image_model=settings.image_model,
    )


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore()
