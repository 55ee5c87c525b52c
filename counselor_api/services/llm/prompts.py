# counselor_api/services/llm/prompts.py
from typing import Sequence, Tuple

from counselor_api.services.scripture_services import ScripturePassage

SYSTEM_PROMPT = """You are a Christian counselor providing Biblical guidance. Your role is to help users through guided consultation.

CORE PRINCIPLES:
1. Biblical truth supersedes all other input
2. Broadly evangelical/non-denominational theological stance
3. Never provide medical, legal, or clinical mental health advice

CONSULTATION APPROACH:
- Ask clarifying questions to understand the user's situation
- Once you have enough context, provide Biblical guidance
- Cite scripture naturally with inline references (e.g., "As Jesus said in John 3:16...")
- Be compassionate, non-judgmental, and supportive

SCRIPTURE CITATION FORMAT:
Integrate the scripture provided in the context naturally, citing it as "Book Chapter:Verse".
Use the translation provided in the context.

IMPORTANT DISCLAIMERS:
- You are AI-powered spiritual guidance, not professional counseling
- For medical issues, direct to healthcare professionals
- For legal matters, direct to qualified attorneys
- For severe mental health issues, recommend licensed Christian counselors

RESPONSE FORMAT (JSON only):
If you need clarification, respond with:
{"requiresClarification": true, "clarifyingQuestion": "Your question here"}

If you're ready to provide guidance, respond with:
{"requiresClarification": false, "guidance": "Your guidance here with scripture citations"}"""

PHASE_BROAD = "broad"
PHASE_SPECIFIC = "specific"
PHASE_CRITICAL = "critical"
PHASE_FORCE_ANSWER = "force-answer"


def question_phase(clarification_count: int, max_questions: int) -> str:
    """Broad first question, then specific ones, then only critical ones, then none."""
    if clarification_count >= max_questions:
        return PHASE_FORCE_ANSWER
    if clarification_count == 0:
        return PHASE_BROAD
    specific_phase_end = 1 if max_questions <= 3 else 2
    if clarification_count <= specific_phase_end:
        return PHASE_SPECIFIC
    return PHASE_CRITICAL


def question_limit_guidance(clarification_count: int, max_questions: int) -> str:
    remaining = max(max_questions - clarification_count, 0)
    guidance = (
        "\n\nCLARIFYING QUESTION LIMITS:\n"
        f"- Questions asked: {clarification_count}/{max_questions}\n"
        f"- Remaining: {remaining}\n"
    )
    phase = question_phase(clarification_count, max_questions)

    if phase == PHASE_FORCE_ANSWER:
        return guidance + (
            f"\nCRITICAL: You have reached your clarifying question limit ({max_questions}/{max_questions}).\n"
            "You MUST now provide comprehensive Biblical guidance based on the information you have.\n"
            "- Cite relevant Scripture passages to support your guidance\n"
            "- If details are unclear, make reasonable assumptions and acknowledge them\n"
            "- DO NOT ask another clarifying question under any circumstances\n"
            '- Set "requiresClarification" to false in your response'
        )
    if phase == PHASE_CRITICAL:
        plural = "" if remaining == 1 else "s"
        return guidance + (
            f"\nQUESTION PHASE: Critical Only ({remaining} question{plural} remaining)\n"
            "Only ask if you genuinely cannot provide helpful Biblical guidance without the answer.\n"
            "STRONG PREFERENCE: if you can provide meaningful counsel with what you know, do so now."
        )
    if phase == PHASE_SPECIFIC:
        return guidance + (
            f"\nQUESTION PHASE: Specific Details ({remaining} questions remaining)\n"
            "Drill into the key details and practical circumstances that will inform your counsel.\n"
            "Each question should move you closer to providing Biblical guidance."
        )
    return guidance + (
        f"\nQUESTION PHASE: Broad Understanding ({max(remaining - 1, 0)} questions remaining after this)\n"
        "If you ask, ask one broad, open question about the overall situation and the core "
        "spiritual or relational issue."
    )


def build_system_prompt(clarification_count: int, max_questions: int) -> str:
    return SYSTEM_PROMPT + question_limit_guidance(clarification_count, max_questions)


def format_passages(passages: Sequence[ScripturePassage]) -> str:
    return "\n".join(f'{p.book} {p.chapter}:{p.verse} ({p.translation}): "{p.text}"' for p in passages)


def format_history(history: Sequence[Tuple[str, str]]) -> str:
    return "\n".join(f"{role.upper()}: {content}" for role, content in history)


def build_user_prompt(
    message: str,
    passages: Sequence[ScripturePassage],
    history: Sequence[Tuple[str, str]],
    clarification_count: int,
    max_questions: int,
) -> str:
    if clarification_count < max_questions:
        budget_line = "You may ask a clarifying question if needed to better understand the situation."
    else:
        budget_line = "You have asked the maximum number of clarifying questions. Now provide guidance based on what you know."
    return (
        f"CONVERSATION HISTORY:\n{format_history(history) or 'This is the start of the conversation.'}\n\n"
        f"RELEVANT SCRIPTURES:\n{format_passages(passages) or 'No specific scriptures retrieved for this query.'}\n\n"
        f"USER MESSAGE:\n{message}\n\n"
        f"CLARIFICATION COUNT: {clarification_count} / {max_questions}\n\n"
        f"{budget_line}\n"
    )
