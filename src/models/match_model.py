from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from models.extraction_model import Seniority


class RequirementModel(BaseModel):
    requirement_id: Optional[str] = None
    required_skills: List[str] = []
    preferred_skills: List[str] = []
    seniority: Optional[Seniority] = None
    location: Optional[str] = None


class MatchResult(BaseModel):
    requirement_id: Optional[str] = None
    candidate_id: str
    candidate_name: Optional[str] = None
    score: float = Field(ge=0.0, le=100.0)
    matching_skills: List[str] = []
    summary: str = ""
    breakdown: Dict[str, float] = {}
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
