import math
import re
from typing import List, Optional, Sequence, Tuple

import numpy as np

from app.helpers.vocabulary import (
    EXPERIENCE_SUGGESTION,
    EXPERIENCE_THRESHOLD,
    KEYWORD_SUGGESTION,
    KEYWORD_THRESHOLD,
    SENIORITY_TERMS,
    SKILL_PATTERN,
    SKILLS_SUGGESTION,
    SKILLS_THRESHOLD,
    STOPWORDS,
    YEARS_PATTERN,
)
from app.models.models import FitBreakdown
from app.utils.exceptions import DimensionMismatchError

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

BASE_EXPERIENCE_SCORE = 50
SENIORITY_BONUS = 20
YEARS_BONUS = 30


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def percentage(hits: int, total: int) -> int:
    # nothing required means nothing missing
    if total == 0:
        return 100
    return round_half_up(100 * hits / total)


def extract_keywords(text: Optional[str]) -> List[str]:
    if not text:
        return []
    cleaned = _NON_ALNUM.sub("", text.lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in STOPWORDS]


def extract_skills(text: Optional[str]) -> List[str]:
    """Recognized skills in first-seen order, lowercased and deduplicated."""
    found = []
    for m in SKILL_PATTERN.finditer(text or ""):
        skill = m.group(0).lower()
        if skill not in found:
            found.append(skill)
    return found


def match_skills(resume_text: str, job_text: str) -> int:
    job_skills = extract_skills(job_text)
    resume_skills = set(extract_skills(resume_text))
    matched = [s for s in job_skills if s in resume_skills]
    return percentage(len(matched), len(job_skills))


def detect_seniority(text: Optional[str]) -> Optional[str]:
    lowered = (text or "").lower()
    for term in SENIORITY_TERMS:
        if term in lowered:
            return term
    return None


def extract_years(text: Optional[str]) -> Optional[int]:
    m = YEARS_PATTERN.search(text or "")
    return int(m.group(1)) if m else None


def match_experience(resume_text: str, job_text: str) -> int:
    score = BASE_EXPERIENCE_SCORE

    job_seniority = detect_seniority(job_text)
    resume_seniority = detect_seniority(resume_text)
    if job_seniority and job_seniority == resume_seniority:
        score += SENIORITY_BONUS

    job_years = extract_years(job_text)
    resume_years = extract_years(resume_text)
    if job_years is not None and resume_years is not None and resume_years >= job_years:
        score += YEARS_BONUS

    return min(score, 100)


def keyword_overlap(resume_text: str, job_text: str) -> int:
    job_keywords = extract_keywords(job_text)
    resume_keywords = set(extract_keywords(resume_text))
    # repeated job tokens count once per occurrence
    hits = sum(1 for k in job_keywords if k in resume_keywords)
    return percentage(hits, len(job_keywords))


def build_suggestions(breakdown: FitBreakdown) -> List[str]:
    suggestions = []
    if breakdown.skills_match < SKILLS_THRESHOLD:
        suggestions.append(SKILLS_SUGGESTION)
    if breakdown.experience_match < EXPERIENCE_THRESHOLD:
        suggestions.append(EXPERIENCE_SUGGESTION)
    if breakdown.keyword_overlap < KEYWORD_THRESHOLD:
        suggestions.append(KEYWORD_SUGGESTION)
    return suggestions


def analyze_fit(resume_text: str, job_text: str) -> Tuple[FitBreakdown, List[str]]:
    breakdown = FitBreakdown(
        skills_match=match_skills(resume_text, job_text),
        experience_match=match_experience(resume_text, job_text),
        keyword_overlap=keyword_overlap(resume_text, job_text),
    )
    return breakdown, build_suggestions(breakdown)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.shape[0] != vb.shape[0]:
        raise DimensionMismatchError(va.shape[0], vb.shape[0])

    den = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if den == 0.0:
        return 0.0
    return float(np.dot(va, vb)) / den
