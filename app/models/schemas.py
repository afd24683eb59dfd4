from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


# -------- Fit score --------
class FitScoreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Optional so that missing fields reach the route and produce a 400
    resume_text: Optional[str] = Field(default=None, alias="resumeText")
    job_id: Optional[str] = Field(default=None, alias="jobId")


# -------- Resume upload --------
class ResumeUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resume_text: str = Field(alias="resumeText")
