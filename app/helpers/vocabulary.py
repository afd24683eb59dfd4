"""Fixed reference data shared by the rule-based matchers."""
import re

from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

STOPWORDS = ENGLISH_STOP_WORDS

SKILL_NAMES = (
    "JavaScript",
    "React",
    "Node.js",
    "TypeScript",
    "Python",
    "SQL",
    "Docker",
    "AWS",
    "Tailwind",
    "Figma",
    "Git",
)

SKILL_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(s) for s in SKILL_NAMES) + r")\b",
    re.IGNORECASE,
)

# Order matters: the first term found wins, not the most specific one.
SENIORITY_TERMS = (
    "intern",
    "fresher",
    "junior",
    "mid-level",
    "senior",
    "lead",
    "manager",
)

YEARS_PATTERN = re.compile(r"\b(\d{1,2})\s+(years|yrs)\s+(of\s+)?experience\b", re.IGNORECASE)

SKILLS_THRESHOLD = 70
EXPERIENCE_THRESHOLD = 60
KEYWORD_THRESHOLD = 50

SKILLS_SUGGESTION = "Add more relevant skills from the job description."
EXPERIENCE_SUGGESTION = "Highlight roles and achievements that match the job level."
KEYWORD_SUGGESTION = "Include more keywords from the job post to improve visibility."
