"""Interview router."""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from app.config import settings
from app.schemas.common import ApiResponse, ok
from app.schemas.interview import (
    AnswerSubmittedData,
    GeneratedQuestionData,
    GradeInterviewData,
    InterviewSessionListItem,
    InterviewSummaryData,
    NextQuestionData,
    QuestionStatusData,
    StartInterviewData,
    SubmitAnswerRequest,
    TimeoutAnswerRequest,
)
from app.services.interview_service import InterviewService
from app.utils.dependencies import get_current_user_id, get_interview_service
from app.utils.uploads import ensure_media, ensure_pdf, read_upload

router = APIRouter(prefix="/api/v1/interviews", tags=["Interviews"])


@router.post("", response_model=ApiResponse[StartInterviewData], status_code=status.HTTP_201_CREATED)
async def start_interview(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    """Upload a resume and start a new interview."""
    ensure_pdf(file)
    resume = await read_upload(file, settings.max_resume_size_mb)
    data = await service.start_interview(user_id, resume, file.filename, file.content_type)
    return ok("Interview started", data)


@router.post("/analyze", response_model=ApiResponse[List[GeneratedQuestionData]])
async def analyze_resume(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    """Preview the questions a resume would produce, without starting an interview."""
    ensure_pdf(file)
    resume = await read_upload(file, settings.max_resume_size_mb)
    questions = await service.preview_questions(user_id, resume)
    return ok("Questions generated", questions)


@router.get("", response_model=ApiResponse[List[InterviewSessionListItem]])
async def list_interviews(
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    sessions = await service.list_sessions(user_id)
    return ok("Interviews retrieved", sessions)


@router.get("/{session_id}/next-question", response_model=ApiResponse[Optional[NextQuestionData]])
async def next_question(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    question = await service.get_next_question(session_id, user_id)
    if question is None:
        return ok("All questions answered", None)
    return ok("Next question", question)


@router.get("/{session_id}/questions", response_model=ApiResponse[List[QuestionStatusData]])
async def list_questions(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    questions = await service.get_questions_with_status(session_id, user_id)
    return ok("Questions retrieved", questions)


@router.post("/{session_id}/submit", response_model=ApiResponse[AnswerSubmittedData])
async def submit_answer(
    session_id: str,
    request: SubmitAnswerRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    data = await service.submit_answer(session_id, user_id, request.question_id, request.answer_text)
    return ok("Answer submitted", data)


@router.post("/{session_id}/submit-audio", response_model=ApiResponse[AnswerSubmittedData])
async def submit_audio_answer(
    session_id: str,
    audio: UploadFile = File(...),
    question_id: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    """Submit a recorded answer; it is transcribed and stored as text."""
    ensure_media(audio)
    content = await read_upload(audio, settings.max_audio_size_mb)
    data = await service.transcribe_and_store(
        session_id, user_id, question_id, content,
        filename=audio.filename or "answer.webm",
        mime_type=audio.content_type or "audio/webm",
    )
    return ok("Audio answer submitted", data)


@router.post("/{session_id}/timeout", response_model=ApiResponse[AnswerSubmittedData])
async def timeout_question(
    session_id: str,
    request: TimeoutAnswerRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    data = await service.timeout_answer(session_id, user_id, request.question_id)
    return ok("Question timed out", data)


@router.post("/{session_id}/grade", response_model=ApiResponse[GradeInterviewData])
async def grade_interview(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    data = await service.grade_interview(session_id, user_id)
    return ok("Interview graded", data)


@router.get("/{session_id}/summary", response_model=ApiResponse[InterviewSummaryData])
async def interview_summary(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    data = await service.get_interview_summary(session_id, user_id)
    return ok("Interview summary", data)
