import asyncio
import os

from dotenv import load_dotenv

from app.models.models import FitScoreResult
from app.services.embeddings import EmbeddingClient, get_embedding_client
from app.services.matching import analyze_fit, cosine_similarity, round_half_up
from app.utils.exceptions import EmbeddingError
from app.utils.logging_config import get_logger, log_function_call

load_dotenv()

logger = get_logger(__name__)

ALLOW_DEGRADED_SCORE = os.getenv("ALLOW_DEGRADED_SCORE", "false").lower() in ("1", "true", "yes")


@log_function_call
async def calculate_fit_score(
    resume_text: str,
    job_description: str,
    client: EmbeddingClient = None,
    timeout: float = None,
    allow_degraded: bool = None,
) -> FitScoreResult:
    """
    Score one resume against one job description.

    ``score`` is cosine similarity of the two embeddings scaled to a percentage
    and is not clamped, so dissimilar texts can score below zero. The
    breakdown and suggestions come from the rule-based matchers and do not
    feed into ``score``.

    Embedding failures fail the whole call unless degraded mode is allowed,
    in which case the breakdown is returned with ``score=None`` and
    ``degraded=True``.
    """
    client = client or get_embedding_client()
    if allow_degraded is None:
        allow_degraded = ALLOW_DEGRADED_SCORE

    # Both provider calls start now; the matchers run while they are in flight.
    # If either side fails, the other is cancelled so it stops retrying.
    tasks = [
        asyncio.ensure_future(client.embed(resume_text, timeout=timeout)),
        asyncio.ensure_future(client.embed(job_description, timeout=timeout)),
    ]
    try:
        breakdown, suggestions = analyze_fit(resume_text, job_description)
        resume_vec, job_vec = await asyncio.gather(*tasks)
    except BaseException as e:
        for task in tasks:
            task.cancel()
        if not (allow_degraded and isinstance(e, EmbeddingError)):
            raise
        logger.warning(f"Embedding unavailable, returning degraded fit score: {e.details or e.message}")
        return FitScoreResult(score=None, breakdown=breakdown, suggestions=suggestions, degraded=True)

    similarity = cosine_similarity(resume_vec, job_vec)
    score = round_half_up(similarity * 100)
    if score < 0:
        logger.info(f"Negative similarity {similarity:.4f}; score left unclamped at {score}")

    return FitScoreResult(score=score, breakdown=breakdown, suggestions=suggestions)
