"""Teaching aid fetcher with deduplication and fallback prompts."""
import asyncio
import logging
from typing import List, Optional, Sequence

from app.core.config import settings
from app.services.teaching.generator import ContentGenerator
from app.services.teaching.models import (
    Difficulty,
    FetchResult,
    GenerationError,
    GenerationOk,
    GenerationResult,
    TeachingPrompt,
    normalize_question,
)

logger = logging.getLogger(__name__)

FALLBACK_QUESTIONS = [
    "What aspect of your field interests you the most?",
    "Can you describe a typical day in your work or studies?",
    "What challenges do you face in your area of interest?",
    "How do you stay updated with developments in your field?",
    "What advice would you give to someone starting in your area?",
]

FALLBACK_CONTEXT = "General conversation starter. Ask follow-up questions about the details."


class TeachingAidFetcher:
    """
    Fetches one conversation prompt that has not been shown yet.

    Never raises for generator problems: failures, timeouts, malformed output
    and repeated questions all resolve to an unused prompt from the fallback
    pool.
    """

    def __init__(
        self,
        generator: ContentGenerator,
        timeout_seconds: Optional[float] = None,
        fallback_questions: Optional[List[str]] = None,
    ):
        self.generator = generator
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.teaching_prompt_timeout_seconds
        )
        self.fallback_questions = fallback_questions or FALLBACK_QUESTIONS

    async def fetch(
        self,
        interests: List[str],
        difficulty: Difficulty,
        used_prompts: Sequence[str] = (),
    ) -> FetchResult:
        used = {normalize_question(question) for question in used_prompts}
        result = await self._generate(interests, difficulty, list(used_prompts))

        if isinstance(result, GenerationOk):
            if normalize_question(result.prompt.question) not in used:
                return FetchResult(prompt=result.prompt)
            result = GenerationError(reason="duplicate question")

        logger.info(f"[TEACHING AID] Using fallback prompt - Reason: {result.reason}")
        return FetchResult(prompt=self.fallback_prompt(difficulty, used), fallback=True)

    def fallback_prompt(self, difficulty: Difficulty, used: set) -> TeachingPrompt:
        """First pool question not in ``used``; the first one if all were used."""
        question = next(
            (q for q in self.fallback_questions if normalize_question(q) not in used),
            self.fallback_questions[0],
        )
        return TeachingPrompt(question=question, context=FALLBACK_CONTEXT, difficulty=difficulty)

    async def _generate(
        self, interests: List[str], difficulty: Difficulty, excluding: List[str]
    ) -> GenerationResult:
        try:
            return await asyncio.wait_for(
                self.generator.generate_prompt(interests, difficulty, excluding),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[TEACHING AID] Generator timed out after {self.timeout_seconds}s"
            )
            return GenerationError(reason="timeout")
        except Exception as e:
            logger.error(
                f"[TEACHING AID] Generator raised: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return GenerationError(reason=f"generator error: {type(e).__name__}")
