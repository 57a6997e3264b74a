from .models import (
    StudyClass, StudyMaterial, GeneratedQuestion, CommuteSession, SessionResponse,
    ProcessingStatusEnum, DifficultyEnum
)
