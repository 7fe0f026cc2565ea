from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class Seniority(str, Enum):
    INTERN = "intern"
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"

    @property
    def rank(self) -> int:
        return SENIORITY_ORDER.index(self)


SENIORITY_ORDER = [
    Seniority.INTERN,
    Seniority.JUNIOR,
    Seniority.MID,
    Seniority.SENIOR,
    Seniority.LEAD,
]


class ExtractionMethod(str, Enum):
    DICTIONARY = "dictionary"
    HYBRID = "hybrid"
    GENERATIVE = "generative"


class ContactInfo(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None


class SkillCategories(BaseModel):
    programming_languages: List[str] = []
    web_technologies: List[str] = []
    databases: List[str] = []
    cloud_devops: List[str] = []
    soft_skills: List[str] = []
    tools_frameworks: List[str] = []

    def all(self) -> List[str]:
        return (
            self.programming_languages
            + self.web_technologies
            + self.databases
            + self.cloud_devops
            + self.soft_skills
            + self.tools_frameworks
        )

    def category_of(self, skill: str) -> Optional[str]:
        for category, skills in self.model_dump().items():
            if skill in skills:
                return category
        return None


class ExtractionResult(BaseModel):
    candidate_name: Optional[str] = None
    contact: ContactInfo = Field(default_factory=ContactInfo)
    skills: SkillCategories = Field(default_factory=SkillCategories)
    skill_years: Dict[str, float] = {}
    years_experience: Optional[float] = None
    seniority: Optional[Seniority] = None
    current_position: Optional[str] = None
    current_project: Optional[str] = None
    education: List[str] = []
    summary: Optional[str] = None
    language: str = "unknown"
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    extraction_method: ExtractionMethod = ExtractionMethod.DICTIONARY

    def all_skills(self) -> List[str]:
        return self.skills.all()

    @property
    def total_skills_found(self) -> int:
        return len(set(self.all_skills()))
