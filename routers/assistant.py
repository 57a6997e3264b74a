"""
Router for the LLM-backed study assistant and the answer matcher.
"""
from fastapi import APIRouter, Depends

from core.security import get_current_user_id
from core.logging import get_logger
from schemas.assistant import AskRequest, AskResponse, MatchRequest, MatchResponse
from schemas.question import (
    QuestionGenerationRequest, ImageQuestionGenerationRequest, QuestionGenerationResponse
)
from services.assistant_service import AssistantService
from services.llm_client import LLMClient, get_llm_client
from services.question_generator import QuestionGeneratorService
from services.web_search import WebSearchClient, get_web_search_client
from services.voice_matching import is_help_request, match_answer, match_session_answer

router = APIRouter(prefix="/assistant", tags=["Assistant"])
logger = get_logger("assistant")


@router.post("/ask", response_model=AskResponse)
async def ask_assistant(
    request: AskRequest,
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
    search: WebSearchClient = Depends(get_web_search_client)
):
    """
    Short spoken-style answer to a study question.

    With Google Custom Search configured the model may look things up;
    the results it used come back in ``search_results``.
    """
    return await AssistantService(llm, search).ask(
        request.question,
        current_topic=request.current_topic,
        conversation_history=request.conversation_history,
    )


@router.post("/questions", response_model=QuestionGenerationResponse)
async def generate_questions(
    request: QuestionGenerationRequest,
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client)
):
    """Generate questions from pasted text without storing them."""
    logger.info("Ad-hoc question generation requested", user_id=user_id)
    return await QuestionGeneratorService(llm).generate_questions(request.text, request.count)


@router.post("/questions/image", response_model=QuestionGenerationResponse)
async def generate_questions_from_image(
    request: ImageQuestionGenerationRequest,
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client)
):
    """Generate questions from an image without storing them."""
    logger.info("Ad-hoc image question generation requested", user_id=user_id)
    return await QuestionGeneratorService(llm).generate_from_image(request.image_url, request.count)


@router.post("/match", response_model=MatchResponse)
async def match_transcript(
    request: MatchRequest,
    user_id: str = Depends(get_current_user_id)
):
    """Map a transcript onto one of the given options."""
    matcher = match_session_answer if request.allow_letter else match_answer
    result = matcher(request.transcript, request.options)
    return MatchResponse(
        outcome=result.outcome.value,
        option=result.option,
        score=result.score,
        is_help_request=is_help_request(request.transcript),
    )
