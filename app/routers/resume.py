import os
from typing import Optional

from fastapi import APIRouter, File, UploadFile
from starlette.concurrency import run_in_threadpool

from app.helpers.parsing import extract_resume_text
from app.models.models import ResumeDocument
from app.models.schemas import ResumeUploadResponse
from app.utils.exceptions import ExceptionContext, ValidationError
from app.utils.logging_config import describe_text, get_logger

router = APIRouter()
logger = get_logger(__name__)

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))


@router.post("/upload", response_model=ResumeUploadResponse)
async def upload_resume(resume: Optional[UploadFile] = File(None)):
    """Extract plain text from an uploaded resume (PDF, DOCX or plain text)"""
    logger.info(f"File received: {'YES' if resume else 'NO'}")
    if resume is None:
        raise ValidationError("No file uploaded", field="resume")

    content = await resume.read()
    document = ResumeDocument(
        filename=resume.filename,
        mime_type=resume.content_type or "",
        content=content,
    )
    logger.info(
        f"File details: {document.filename} ({document.mime_type}, {document.size} bytes)"
    )

    if document.size > MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File too large (limit {MAX_UPLOAD_BYTES} bytes)", field="resume"
        )

    with ExceptionContext(
        "process resume",
        error_message="Failed to process resume",
        logger=logger,
        document_name=document.filename,
    ):
        # pdfminer and python-docx are blocking
        document.text = await run_in_threadpool(
            extract_resume_text, document.content, document.mime_type
        )

    if not document.text or not document.text.strip():
        raise ValidationError("Could not extract text from resume", field="resume")

    logger.info(f"Text extracted from {document.filename}: {describe_text(document.text)}")
    return ResumeUploadResponse(resume_text=document.text)
