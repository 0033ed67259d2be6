from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    CANDIDATE = "candidate"
    ADMINISTRATOR = "administrator"


class Profile(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    active: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubmittedResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    question_id: str
    video_url: str
    attempt_number: int = Field(..., ge=1)
    created_at: Optional[datetime] = None


class QuestionSummary(BaseModel):
    id: str
    title: str


class CandidateSummary(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class ResponseRecord(SubmittedResponse):
    """A submitted response joined with its candidate and question."""
    profiles: CandidateSummary
    questions: QuestionSummary


class AuthResult(BaseModel):
    granted: bool
    role: Optional[Role] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    access_token: Optional[str] = None


class MediaBlob(BaseModel):
    """One assembled take, ready for upload."""
    data: bytes
    content_type: str = "video/webm"

    @property
    def size(self) -> int:
        return len(self.data)
