# counselor_api/services/llm/llm_services.py
import json
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from google import genai
from google.genai import errors, types

from counselor_api.core.config import settings
from counselor_api.services.llm.prompts import build_system_prompt, build_user_prompt
from counselor_api.services.scripture_services import ScripturePassage

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The generation collaborator failed or replied with something unusable."""


@dataclass(frozen=True)
class GenerationResult:
    content: str
    requires_clarification: bool


class CounselGenerator:
    """Produces the assistant reply for one counselling turn."""

    async def generate(
        self,
        message: str,
        passages: Sequence[ScripturePassage],
        history: Sequence[Tuple[str, str]],
        clarification_count: int,
    ) -> GenerationResult:
        raise NotImplementedError


def parse_generation_reply(raw: Optional[str], at_question_limit: bool = False) -> GenerationResult:
    """
    Maps {"requiresClarification", "clarifyingQuestion", "guidance"} to a GenerationResult.
    Once the question budget is spent a reply is never flagged as a clarification.
    """
    if not raw or not raw.strip():
        raise GenerationError("Empty reply from generation model")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Generation reply is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise GenerationError("Generation reply is not a JSON object")

    requires_clarification = parsed.get("requiresClarification") is True
    question = parsed.get("clarifyingQuestion")
    guidance = parsed.get("guidance")

    if requires_clarification and at_question_limit:
        logger.warning("Model asked a clarifying question past the limit; treating it as guidance")
        requires_clarification = False
        content = guidance or question
    else:
        content = question if requires_clarification else guidance

    if not isinstance(content, str) or not content.strip():
        raise GenerationError("Generation reply has no content")
    return GenerationResult(content=content.strip(), requires_clarification=requires_clarification)


class GeminiCounselGenerator(CounselGenerator):
    def __init__(self, client: Optional[genai.Client], model: str = None, max_clarifying_questions: int = None):
        self.client = client
        self.model = model or settings.GENERATION_MODEL
        self.max_clarifying_questions = (
            max_clarifying_questions if max_clarifying_questions is not None else settings.MAX_CLARIFYING_QUESTIONS
        )

    async def generate(
        self,
        message: str,
        passages: Sequence[ScripturePassage],
        history: Sequence[Tuple[str, str]],
        clarification_count: int,
    ) -> GenerationResult:
        system_instruction = build_system_prompt(clarification_count, self.max_clarifying_questions)
        if self.client is None:
            raise GenerationError("Gemini client is not initialised")
        prompt = build_user_prompt(message, passages, history, clarification_count, self.max_clarifying_questions)
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    response_mime_type="application/json",
                    temperature=0.7,
                    max_output_tokens=800,
                ),
            )
        except errors.APIError as e:
            logger.error(f"Gemini API error from {self.model}: {e}")
            raise GenerationError(f"Gemini API error: {e}") from e

        return parse_generation_reply(
            response.text, at_question_limit=clarification_count >= self.max_clarifying_questions
        )
