"""
Multiple-choice question generation with the LLM.
"""
import re
import json
from typing import Any, List, Optional, Tuple
from pydantic import ValidationError

from core.config import settings
from core.exceptions import AIResponseParseException
from core.logging import get_logger
from schemas.question import GeneratedQuestionDraft, QuestionGenerationResponse
from services.llm_client import LLMClient

logger = get_logger("question_generator")

# first '[' to last ']', so prose or markdown fences around the array are ignored
JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

QUESTION_FORMAT = """Format your response as a JSON array with this exact structure:
[
  {
    "question_text": "The question text here?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correct_answer": "The exact text of the correct option",
    "explanation": "Brief explanation of why this is correct",
    "difficulty": "easy|medium|hard"
  }
]"""


def parse_questions(content: str) -> List[Any]:
    """
    Pull the JSON array of questions out of a model reply.

    Raises:
        AIResponseParseException: If there is no array or it is not valid JSON
    """
    match = JSON_ARRAY_PATTERN.search(content or "")
    if not match:
        logger.error("No JSON array found in AI response", raw_content=content)
        raise AIResponseParseException("Failed to parse questions: No JSON array found in response",
                                       raw_content=content)
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in AI response", error=str(e), raw_content=content)
        raise AIResponseParseException(f"Failed to parse questions: {e}", raw_content=content)


def validate_questions(items: List[Any]) -> Tuple[List[GeneratedQuestionDraft], int]:
    """
    Keep the items that are well-formed questions.

    Each kept question remembers its position in the model's array as
    ``question_order``. Returns the accepted drafts and the number rejected.
    """
    accepted = []
    rejected = 0
    for index, item in enumerate(items):
        if isinstance(item, dict):
            item = {**item, "question_order": index}
        try:
            accepted.append(GeneratedQuestionDraft.model_validate(item))
        except ValidationError as e:
            rejected += 1
            logger.warning("Rejected generated question",
                           index=index,
                           errors=[err["msg"] for err in e.errors()])
    return accepted, rejected


class QuestionGeneratorService:
    """Service for generating questions from text or images using the LLM."""

    def __init__(self, llm: LLMClient, max_input_chars: Optional[int] = None):
        self.llm = llm
        self.max_input_chars = max_input_chars or settings.generation_max_input_chars

    def _get_generation_prompt(self, text: str, num_questions: int) -> str:
        """Build the prompt for text input."""
        return f"""Generate {num_questions} multiple-choice quiz questions from the following study material.

{QUESTION_FORMAT}

Make sure:
1. Each question has exactly 4 options
2. The correct_answer matches one of the options exactly
3. Questions test understanding, not just memorization
4. Cover different topics from the text and do not repeat questions
5. Vary the difficulty levels
6. Return ONLY the JSON array, no other text

Study material content:
{text[:self.max_input_chars]}"""

    def _get_image_prompt(self, num_questions: int) -> str:
        return f"""Look at this image and generate {num_questions} multiple-choice quiz questions based on its content.

{QUESTION_FORMAT}

Make sure:
1. Each question has exactly 4 options
2. The correct_answer matches one of the options exactly
3. Questions test understanding of the content shown
4. Return ONLY the JSON array, no other text"""

    def _build_result(self, content: str) -> QuestionGenerationResponse:
        items = parse_questions(content)
        questions, rejected = validate_questions(items)
        if not questions:
            logger.error("AI response contained no valid questions",
                         item_count=len(items), raw_content=content)
            raise AIResponseParseException("Failed to parse questions: no valid questions in response",
                                           raw_content=content)
        logger.info("Questions generated", accepted=len(questions), rejected=rejected)
        return QuestionGenerationResponse(questions=questions, rejected_count=rejected)

    async def generate_questions(self, text: str, num_questions: Optional[int] = None) -> QuestionGenerationResponse:
        """
        Generate questions from study text.

        Args:
            text: Extracted study material; only the first ``max_input_chars`` are sent
            num_questions: How many questions to ask for (default from settings)

        Returns:
            QuestionGenerationResponse: Validated questions and the rejected count
        """
        num_questions = num_questions or settings.text_question_count
        prompt = self._get_generation_prompt(text, num_questions)
        logger.info("Question generation started",
                    num_questions=num_questions,
                    text_length=len(text),
                    prompt_length=len(prompt))
        content = await self.llm.complete([{"role": "user", "content": prompt}])
        return self._build_result(content)

    async def generate_from_image(self, image_url: str, num_questions: Optional[int] = None) -> QuestionGenerationResponse:
        """Generate questions from an image (data URL or remote URL) with the vision model."""
        num_questions = num_questions or settings.image_question_count
        logger.info("Image question generation started", num_questions=num_questions)
        content = await self.llm.complete_with_image(self._get_image_prompt(num_questions), image_url)
        return self._build_result(content)
