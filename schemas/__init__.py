# Schemas package for Pydantic models
from .study_class import StudyClassCreate, StudyClassRead, StudyClassUpdate, ClassAccuracyRead
from .material import StudyMaterialRead, MaterialProcessResponse
from .question import (
    GeneratedQuestionDraft, GeneratedQuestionRead,
    QuestionGenerationRequest, ImageQuestionGenerationRequest, QuestionGenerationResponse
)
from .session import (
    CommuteSessionCreate, CommuteSessionRead,
    SessionResponseCreate, SessionResponseRead,
    VoiceAnswerRequest, VoiceAnswerResponse
)
from .assistant import ChatMessage, AskRequest, AskResponse, SearchResult, MatchRequest, MatchResponse
from .maps import LatLng, RouteRequest, RouteInfo, PlacePrediction

__all__ = [
    "StudyClassCreate", "StudyClassRead", "StudyClassUpdate", "ClassAccuracyRead",
    "StudyMaterialRead", "MaterialProcessResponse",
    "GeneratedQuestionDraft", "GeneratedQuestionRead",
    "QuestionGenerationRequest", "ImageQuestionGenerationRequest", "QuestionGenerationResponse",
    "CommuteSessionCreate", "CommuteSessionRead",
    "SessionResponseCreate", "SessionResponseRead",
    "VoiceAnswerRequest", "VoiceAnswerResponse",
    "ChatMessage", "AskRequest", "AskResponse", "SearchResult", "MatchRequest", "MatchResponse",
    "LatLng", "RouteRequest", "RouteInfo", "PlacePrediction",
]
