"""Standalone teaching question endpoint."""
import logging
from typing import List
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.config import settings
from app.core.dependencies import get_teaching_fetcher
from app.services.teaching.fetcher import TeachingAidFetcher
from app.services.teaching.models import Difficulty

router = APIRouter()
logger = logging.getLogger(__name__)


class TeachingQuestionsRequest(BaseModel):
    """Request body for a session-less teaching question."""
    interests: List[str] = []
    used_questions: List[str] = []
    difficulty: Difficulty = Difficulty(settings.default_difficulty)


@router.post("/api/ai/teaching-questions")
async def generate_teaching_question(
    body: TeachingQuestionsRequest,
    fetcher: TeachingAidFetcher = Depends(get_teaching_fetcher),
):
    """
    Generate one teaching question, avoiding ``used_questions``.

    The caller keeps track of used questions itself.
    """
    logger.info(
        f"[TEACHING QUESTIONS] Request - Interests: {body.interests}, "
        f"Used: {len(body.used_questions)}, Difficulty: {body.difficulty.value}"
    )
    result = await fetcher.fetch(body.interests, body.difficulty, body.used_questions)
    return {
        **result.prompt.model_dump(mode="json"),
        "fallback": result.fallback,
    }
