from fastapi import APIRouter

from app.models.models import FitScoreResult
from app.models.schemas import FitScoreRequest
from app.services.db import get_job
from app.services.fit_score import calculate_fit_score
from app.utils.exceptions import ExceptionContext, NotFoundError, ValidationError
from app.utils.logging_config import describe_text, get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("", response_model=FitScoreResult)
@router.post("/", response_model=FitScoreResult, include_in_schema=False)
async def fit_score(payload: FitScoreRequest):
    """Score a resume against a stored job posting"""
    logger.info(
        f"Fit score request received: resume ({describe_text(payload.resume_text)}), job {payload.job_id}",
        extra={"job_id": payload.job_id},
    )

    if not payload.resume_text or not payload.resume_text.strip() or not payload.job_id:
        raise ValidationError("Missing resumeText or jobId")

    with ExceptionContext(
        "calculate fit score",
        error_message="Failed to calculate fit score",
        logger=logger,
        job_id=payload.job_id,
    ):
        job = await get_job(payload.job_id)
        if not job or not job.description or not job.description.strip():
            raise NotFoundError("Job not found or missing description", resource_id=payload.job_id)

        result = await calculate_fit_score(payload.resume_text, job.description)

    logger.info(f"Fit score for job {payload.job_id}: {result.score}")
    return result
