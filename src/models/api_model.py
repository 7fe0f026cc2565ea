"""Wire schemas of the HTTP surface, one per operation."""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional

from models.request_model import RequestIntent, RequestStatus


class _TextPayload(BaseModel):

    @field_validator("text", check_fields=False)
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("text must not be empty")
        return value


class CreateRequest(BaseModel):
    source_channel: str = Field(min_length=1)
    source_user: str = Field(min_length=1)
    message_text: str = ""
    attachment_url: Optional[str] = None
    source_message_id: Optional[str] = None
    intent: Optional[RequestIntent] = None

    @model_validator(mode="after")
    def _has_content(self):
        # A bare attachment is a complete request
        if not self.message_text.strip() and not (self.attachment_url or "").strip():
            raise ValueError("message_text or attachment_url is required")
        return self


class CreateRequestResponse(BaseModel):
    request_id: str
    status: RequestStatus


class MatchEntry(BaseModel):
    employee_id: str
    employee_name: Optional[str] = None
    match_score: float
    matching_skills: List[str] = []
    ai_summary: str = ""
    seniority: Optional[str] = None
    location: Optional[str] = None
    current_project: Optional[str] = None
    resume_link: Optional[str] = None


class CandidateResult(BaseModel):
    employee_id: Optional[str] = None
    action: Optional[str] = None
    changes_detected: bool = False
    changes_summary: List[str] = []
    status: str


class ProcessResponse(BaseModel):
    request_id: str
    status: RequestStatus
    matches: List[MatchEntry] = []
    summary: str = ""
    processing_time_ms: int = 0
    candidate_result: Optional[CandidateResult] = None
    error: Optional[str] = None


class ExtractedSkillsBlock(BaseModel):
    programming_languages: List[str] = []
    web_technologies: List[str] = []
    databases: List[str] = []
    cloud_devops: List[str] = []
    soft_skills: List[str] = []
    tools_frameworks: List[str] = []
    total_skills_found: int = 0
    confidence: float = 0.0
    language: str = "unknown"
    years_experience: Optional[float] = None
    seniority: Optional[str] = None
    extraction_method: str = "dictionary"


class ExtractSearchRequest(_TextPayload):
    text: str
    required_skills: Optional[List[str]] = None
    preferred_skills: Optional[List[str]] = None
    location: Optional[str] = None
    limit: int = Field(10, ge=1, le=100)


class ExtractSearchResponse(BaseModel):
    extracted_skills: ExtractedSkillsBlock
    matching_employees: List[MatchEntry] = []
    total_matches: int = 0
    processing_time: int = 0


class IngestCandidateRequest(_TextPayload):
    text: str
    file_name: Optional[str] = None
    file_url: Optional[str] = None
    extraction_source: str = "api"


class IngestCandidateResponse(BaseModel):
    candidate_result: CandidateResult
