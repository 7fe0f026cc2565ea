from datetime import datetime
from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class RequestStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RequestIntent(str, Enum):
    SEARCH = "search"
    INGESTION = "ingestion"


class RequestModel(BaseModel):
    request_id: str
    source_channel: str
    source_user: str
    source_message_id: Optional[str] = None
    message_text: str = ""
    attachment_url: Optional[str] = None
    intent: RequestIntent = RequestIntent.SEARCH
    status: RequestStatus = RequestStatus.PENDING
    extracted_skills: Optional[List[str]] = None
    response: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    attempts: int = 0
    created_at: datetime
    processed_at: Optional[datetime] = None
