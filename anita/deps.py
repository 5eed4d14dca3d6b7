"""FastAPI dependencies shared by routers (overridden in tests)."""

from anita.config import settings
from anita.services.description_composer import (
    DescriptionComposer,
    build_description_composer,
)
from anita.utils.llm import LLMClient, get_completion_client, get_llm_client


def get_chat_client() -> LLMClient:
    return get_llm_client()


def get_description_composer() -> DescriptionComposer:
    return build_description_composer(
        get_completion_client(), max_length=settings.DESCRIPTION_MAX_LENGTH
    )
