"""
Study material processing: extract text, generate questions, track status.

The status column is the only coordination between concurrent runs. Every
transition is a compare-and-set UPDATE, so a material can only be claimed
by one run at a time.
"""
from typing import Callable, Dict, FrozenSet, Optional
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ProcessingConflictException, ResourceNotFoundException
from core.file_utils import LocalObjectStorage
from core.logging import get_logger
from db_config import AsyncSessionLocal
from models.models import GeneratedQuestion, ProcessingStatusEnum, StudyMaterial, utcnow
from services.extraction import extract_text
from services.llm_client import LLMClient
from services.question_generator import QuestionGeneratorService

logger = get_logger("material_pipeline")

Status = ProcessingStatusEnum

# target status -> statuses it may be entered from
ALLOWED_TRANSITIONS: Dict[ProcessingStatusEnum, FrozenSet[ProcessingStatusEnum]] = {
    Status.processing: frozenset({Status.pending, Status.failed}),
    Status.completed: frozenset({Status.processing}),
    Status.failed: frozenset({Status.processing}),
}


async def transition_status(
    db: AsyncSession,
    material_id: int,
    target: ProcessingStatusEnum,
    from_statuses: Optional[FrozenSet[ProcessingStatusEnum]] = None,
    error: Optional[str] = None,
    commit: bool = True,
) -> None:
    """
    Move a material to ``target`` if it is currently in one of the allowed sources.

    ``from_statuses`` narrows the allowed sources (it can never widen them).

    Raises:
        ProcessingConflictException: If no row was in an allowed source status
    """
    allowed = ALLOWED_TRANSITIONS.get(target, frozenset())
    if from_statuses is not None:
        allowed = allowed & from_statuses
    if not allowed:
        raise ProcessingConflictException(f"Transition to '{target.value}' is not allowed")

    values = {"processing_status": target, "updated_at": utcnow()}
    if target == Status.failed:
        values["processing_error"] = error
    else:
        values["processing_error"] = None

    stmt = (
        update(StudyMaterial)
        .where(StudyMaterial.id == material_id, StudyMaterial.processing_status.in_(allowed))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        await db.rollback()
        logger.warning("Status transition rejected", material_id=material_id, target=target.value,
                       allowed_from=sorted(s.value for s in allowed))
        raise ProcessingConflictException(
            f"Material {material_id} cannot move to '{target.value}' from its current status"
        )
    if commit:
        await db.commit()
    logger.info("Material status changed", material_id=material_id, status=target.value)


class MaterialPipeline:
    """Runs one material through extraction and question generation."""

    def __init__(
        self,
        generator: QuestionGeneratorService,
        storage: LocalObjectStorage,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        num_questions: Optional[int] = None,
    ):
        self.generator = generator
        self.storage = storage
        self.session_factory = session_factory
        self.num_questions = num_questions or settings.material_question_count

    async def process_material(self, material_id: int, retry: bool = False) -> int:
        """
        Process a material and store its questions.

        Args:
            material_id: The material to process
            retry: Allow claiming a ``failed`` material (manual re-trigger)

        Returns:
            int: Number of questions stored

        Raises:
            ResourceNotFoundException: If the material does not exist
            ProcessingConflictException: If the material could not be claimed
            Exception: Whatever failed after the claim; the material is left ``failed``
        """
        async with self.session_factory() as db:
            material = await db.get(StudyMaterial, material_id)
            if material is None:
                raise ResourceNotFoundException(f"Material {material_id} not found")
            class_id, user_id = material.class_id, material.user_id
            file_path, file_type = material.file_path, material.file_type

            sources = frozenset({Status.pending, Status.failed}) if retry else frozenset({Status.pending})
            await transition_status(db, material_id, Status.processing, from_statuses=sources)
            logger.info("Processing material", material_id=material_id, file_type=file_type, retry=retry)

            try:
                content = await self.storage.read(file_path)
                text = extract_text(content, file_type)

                # kept even if generation fails below
                await db.execute(
                    update(StudyMaterial)
                    .where(StudyMaterial.id == material_id)
                    .values(extracted_text=text, updated_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
                await db.commit()
                logger.info("Extracted text saved", material_id=material_id, text_length=len(text))

                result = await self.generator.generate_questions(text, self.num_questions)

                db.add_all([
                    GeneratedQuestion(
                        class_id=class_id,
                        study_material_id=material_id,
                        user_id=user_id,
                        question_text=draft.question_text,
                        options=list(draft.options),
                        correct_answer=draft.correct_answer,
                        explanation=draft.explanation,
                        difficulty=draft.difficulty,
                        question_order=draft.question_order,
                    )
                    for draft in result.questions
                ])
                await db.flush()
                await transition_status(db, material_id, Status.completed, commit=False)
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error("Material processing failed", material_id=material_id,
                             exception_type=type(e).__name__, error=str(e))
                await self._mark_failed(db, material_id, str(e))
                raise

        logger.info("Material processed", material_id=material_id,
                    questions_generated=len(result.questions), rejected=result.rejected_count)
        return len(result.questions)

    async def _mark_failed(self, db: AsyncSession, material_id: int, error: str):
        try:
            await transition_status(db, material_id, Status.failed, error=error)
        except ProcessingConflictException:
            # the row moved on (or was deleted) while we were running
            logger.warning("Could not record failure", material_id=material_id)

    async def run_in_background(self, material_id: int, retry: bool = False):
        """Entry point for FastAPI background tasks; failures are already on the row."""
        try:
            await self.process_material(material_id, retry=retry)
        except Exception as e:
            logger.error("Background material processing ended with error",
                         material_id=material_id, error=str(e))


def get_material_pipeline() -> MaterialPipeline:
    """FastAPI dependency building the pipeline from settings."""
    generator = QuestionGeneratorService(LLMClient(settings.llm_config()))
    return MaterialPipeline(generator, LocalObjectStorage())
