"""Interview request/response schemas."""
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from app.models.interview import InterviewStatus, QuestionCategory
from app.schemas.common import CamelModel


class SubmitAnswerRequest(CamelModel):
    question_id: str = Field(..., min_length=1)
    answer_text: str = Field(..., min_length=1)


class TimeoutAnswerRequest(CamelModel):
    question_id: str = Field(..., min_length=1)


class StartInterviewData(CamelModel):
    session_id: str
    total_questions: int


class GeneratedQuestionData(CamelModel):
    text: str
    category: QuestionCategory
    order: int


class NextQuestionData(CamelModel):
    question_id: str
    text: str
    category: QuestionCategory
    order: int
    remaining: int


class AnswerSubmittedData(CamelModel):
    question_id: str
    answer_id: Optional[str] = None
    timed_out: bool = False


class GradedAnswerData(CamelModel):
    answer_id: str
    question_id: str
    score: float
    feedback: str


class GradeInterviewData(CamelModel):
    results: List[GradedAnswerData]
    finalized: bool = False
    total_score: Optional[float] = None
    max_score: Optional[float] = None


class QuestionStatusData(CamelModel):
    question_id: str
    text: str
    category: QuestionCategory
    order: int
    answered: bool


class InterviewSummaryData(CamelModel):
    session_id: str
    status: InterviewStatus
    total_score: float
    max_score: float
    answered: int
    total_questions: int


class InterviewSessionListItem(CamelModel):
    session_id: str
    resume_name: Optional[str] = None
    status: InterviewStatus
    question_count: int
    total_score: Optional[float] = None
    max_score: Optional[float] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
