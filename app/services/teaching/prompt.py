"""Teaching question prompt templates."""
from typing import List, Sequence

from app.services.teaching.models import Difficulty


def get_system_prompt() -> str:
    """Generate system prompt for the teaching question generator."""
    return """You help people run language exchange video calls.
One participant is teaching their native language to the other, and needs a
conversation starter to keep the session going.

A good question:
- Is engaging and relevant to the learner's interests
- Is open-ended so it promotes conversation
- Focuses on practical, real-world topics
- Matches the requested difficulty

You must output your response in JSON format with this structure:
{
    "question": "The conversation starter question",
    "context": "One sentence telling the teacher why this question works or how to follow up",
    "difficulty": "beginner|intermediate|advanced"
}
"""


def get_user_prompt(
    interests: List[str],
    difficulty: Difficulty,
    excluding: Sequence[str] = (),
) -> str:
    """Generate user prompt asking for one new question."""
    interests_text = ", ".join(interests) if interests else "general everyday topics"
    prompt = f"""Generate one conversation starter question for a language exchange session.

Learner's interests: {interests_text}
Difficulty: {difficulty.value}
"""
    if excluding:
        used = "\n".join(f"- {question}" for question in excluding)
        prompt += f"""
These questions were already asked in this session. Do NOT repeat them or ask near-duplicates:
{used}
"""
    return prompt
