from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional


class CandidateSkill(BaseModel):
    name: str
    category: str = "tools_frameworks"
    proficiency: int = Field(3, ge=1, le=5)
    years_experience: float = 0.0


class CandidateModel(BaseModel):
    candidate_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    level: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    current_project: Optional[str] = None
    skills: List[CandidateSkill] = []
    resume_url: Optional[str] = None
    extraction_source: Optional[str] = None
    email_key: Optional[str] = None
    name_key: Optional[str] = None
    location_key: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def skill_names(self) -> List[str]:
        return [s.name for s in self.skills]


class UpsertAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


class UpsertOutcome(BaseModel):
    candidate_id: str
    action: UpsertAction
    changes_detected: bool
    change_summary: List[str] = []
    low_confidence: bool = False
