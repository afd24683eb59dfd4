from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ResumeDocument(BaseModel):
    filename: Optional[str] = None
    mime_type: str
    content: bytes = Field(repr=False)
    text: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


class JobPosting(BaseModel):
    id: str
    description: Optional[str] = None


class FitBreakdown(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    skills_match: int = Field(alias="skillsMatch")
    experience_match: int = Field(alias="experienceMatch")
    keyword_overlap: int = Field(alias="keywordOverlap")


class FitScoreResult(BaseModel):
    """
    Overall score comes from embedding similarity; the breakdown comes from the
    rule-based matchers. The two are computed independently and never combined.
    """
    # None only when degraded mode was allowed and the embedding path failed
    score: Optional[int]
    breakdown: FitBreakdown
    suggestions: List[str] = Field(default_factory=list)
    degraded: bool = False
