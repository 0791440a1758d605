"""LLM-backed teaching question generator."""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from app.core.config import settings
from app.services.teaching.models import (
    Difficulty,
    GenerationError,
    GenerationOk,
    GenerationResult,
    TeachingPrompt,
)
from app.services.teaching.prompt import get_system_prompt, get_user_prompt

logger = logging.getLogger(__name__)


class ContentGenerator(ABC):
    """Abstract source of teaching prompts."""

    @abstractmethod
    async def generate_prompt(
        self,
        interests: List[str],
        difficulty: Difficulty,
        excluding: Sequence[str] = (),
    ) -> GenerationResult:
        """Generate one prompt. Must return GenerationError rather than raise."""
        pass


class OpenAITeachingGenerator(ContentGenerator):
    """Generates teaching prompts with an OpenAI chat model."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ):
        if client is None and settings.openai_api_key:
            client = AsyncOpenAI(api_key=settings.openai_api_key)
        self.client = client
        self.model = model or settings.openai_model

    async def generate_prompt(
        self,
        interests: List[str],
        difficulty: Difficulty,
        excluding: Sequence[str] = (),
    ) -> GenerationResult:
        if self.client is None:
            return GenerationError(reason="generator not configured")

        user_prompt = get_user_prompt(interests, difficulty, excluding)
        logger.debug(f"[TEACHING GENERATOR] User Prompt:\n{user_prompt}")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": get_system_prompt()},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0.8,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.warning(
                f"[TEACHING GENERATOR] API call failed: {type(e).__name__}: {str(e)}"
            )
            return GenerationError(reason=f"api error: {type(e).__name__}")

        content = response.choices[0].message.content if response.choices else None
        if not content:
            return GenerationError(reason="empty response")

        try:
            prompt = TeachingPrompt.model_validate_json(content)
        except ValidationError as e:
            logger.warning(
                f"[TEACHING GENERATOR] Malformed response: {content!r} "
                f"({e.error_count()} validation errors)"
            )
            return GenerationError(reason="malformed response")

        logger.info(f"[TEACHING GENERATOR] Generated question: '{prompt.question}'")
        return GenerationOk(prompt=prompt)
