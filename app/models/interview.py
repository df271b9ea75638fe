"""Interview session models."""
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, Optional, Any
from datetime import datetime
from bson import ObjectId
from app.models.user import PyObjectId


class InterviewStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class QuestionCategory(str, Enum):
    TECHNICAL = "TECHNICAL"
    PROJECTS = "PROJECTS"
    BEHAVIORAL = "BEHAVIORAL"


class AnswerSource(str, Enum):
    TEXT = "TEXT"
    AUDIO = "AUDIO"


class InterviewSession(BaseModel):
    """One mock interview attempt built from one uploaded resume."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    user_id: str

    # Resume (immutable after creation)
    resume_text: Optional[str] = None
    resume_name: Optional[str] = None
    resume_mime: Optional[str] = None

    status: InterviewStatus = InterviewStatus.IN_PROGRESS
    question_count: int = 0

    # Scoring results
    total_score: Optional[float] = None
    max_score: Optional[float] = None

    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class InterviewQuestion(BaseModel):
    """AI generated question. Never mutated after the session is created."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    session_id: PyObjectId
    category: QuestionCategory
    text: str
    order: int = Field(..., description="0-based presentation order")
    max_score: int = 10


class InterviewAnswer(BaseModel):
    """At most one per (session_id, question_id, user_id)."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    session_id: PyObjectId
    question_id: PyObjectId
    user_id: str
    answer_text: str = ""
    source: AnswerSource = AnswerSource.TEXT
    timed_out: bool = Field(False, description="Question skipped because its time ran out")

    # Grading
    score: Optional[float] = None
    ai_feedback: Optional[str] = None
    graded_at: Optional[datetime] = None

    transcription_meta: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
