"""Service for running resume-based mock interviews."""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.config import settings
from app.errors import AlreadyCompleted, InvalidInput, NotFound, TranscriptionFailed
from app.models.interview import AnswerSource, InterviewQuestion, InterviewSession, InterviewStatus
from app.models.user import to_object_id
from app.schemas.interview import (
    AnswerSubmittedData,
    GeneratedQuestionData,
    GradedAnswerData,
    GradeInterviewData,
    InterviewSessionListItem,
    InterviewSummaryData,
    NextQuestionData,
    QuestionStatusData,
    StartInterviewData,
)
from app.services.ai_gateway import AIGateway
from app.services.document_service import DocumentService
from app.services.notifier import RealtimeNotifier
from app.services.quota_service import QuotaAction, QuotaService
from app.services.rate_limit_service import AiRateLimiter

logger = logging.getLogger(__name__)


def compute_totals(questions: List[dict], answers: List[dict]) -> Tuple[float, float]:
    """Sum of stored answer scores and of every question's max score.

    Ungraded and timed-out answers count as zero; answers for questions that
    are not in ``questions`` are ignored.
    """
    question_ids = {q["_id"] for q in questions}
    total = sum(
        float(a.get("score") or 0)
        for a in answers
        if a["question_id"] in question_ids
    )
    maximum = sum(float(q.get("max_score", 0)) for q in questions)
    return total, maximum


class InterviewService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        gateway: AIGateway,
        quota: QuotaService,
        notifier: RealtimeNotifier,
        documents: Optional[DocumentService] = None,
        rate_limiter: Optional[AiRateLimiter] = None,
        question_max_score: int = settings.question_max_score,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.db = db
        self.gateway = gateway
        self.quota = quota
        self.notifier = notifier
        self.documents = documents or DocumentService()
        self.rate_limiter = rate_limiter
        self.question_max_score = question_max_score
        self.clock = clock

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_interview(
        self,
        user_id: str,
        resume: bytes,
        resume_name: Optional[str] = None,
        resume_mime: Optional[str] = None
    ) -> StartInterviewData:
        """Create a session and its questions from an uploaded resume.

        Quota and rate limits are checked before anything is parsed or sent
        to a provider. Questions are written before the session document and
        removed again if the session cannot be written, so a session never
        exists without its questions.
        """
        await self.quota.enforce(user_id, QuotaAction.INTERVIEW)
        await self.quota.enforce(user_id, QuotaAction.RESUME_UPLOAD)
        self._limit(user_id, "generateQuestions")

        resume_text = await self._extract_resume(resume)
        generated = await self.gateway.generate_questions(resume_text)

        session_id = ObjectId()
        now = self.clock()
        question_docs = [
            InterviewQuestion(
                session_id=session_id,
                category=q.category,
                text=q.text,
                order=q.order,
                max_score=self.question_max_score,
            ).model_dump(by_alias=True, exclude={"id"})
            for q in generated
        ]

        session = InterviewSession(
            id=session_id,
            user_id=user_id,
            resume_text=resume_text,
            resume_name=resume_name,
            resume_mime=resume_mime,
            status=InterviewStatus.IN_PROGRESS,
            question_count=len(question_docs),
            started_at=now,
            created_at=now,
            updated_at=now,
        )
        try:
            await self.db.interview_questions.insert_many(question_docs)
            await self.db.interview_sessions.insert_one(session.model_dump(by_alias=True))
        except Exception:
            logger.error("Interview %s could not be stored, removing its questions", session_id)
            await self.db.interview_questions.delete_many({"session_id": session_id})
            raise

        data = StartInterviewData(session_id=str(session_id), total_questions=len(question_docs))
        logger.info("Interview %s started for user %s with %s questions", session_id, user_id, len(question_docs))
        self._publish(data.session_id, "interview:started", data)
        return data

    async def preview_questions(self, user_id: str, resume: bytes) -> List[GeneratedQuestionData]:
        """Generate questions for a resume without creating a session."""
        self._limit(user_id, "generateQuestions")
        resume_text = await self._extract_resume(resume)
        generated = await self.gateway.generate_questions(resume_text)
        return [GeneratedQuestionData(text=q.text, category=q.category, order=q.order) for q in generated]

    async def get_next_question(self, session_id: str, user_id: str) -> Optional[NextQuestionData]:
        """Lowest-order unanswered question, or None once every one is answered.

        Finding nothing left completes the session.
        """
        session = await self.get_owned_session(session_id, user_id)
        if session["status"] == InterviewStatus.COMPLETED.value:
            return None

        questions = await self._load_questions(session["_id"])
        answers = await self._load_answers(session["_id"], user_id)
        answered_ids = {a["question_id"] for a in answers}

        pending = [q for q in questions if q["_id"] not in answered_ids]
        if not pending:
            await self._complete(session, questions, answers)
            return None

        question = pending[0]
        data = NextQuestionData(
            question_id=str(question["_id"]),
            text=question["text"],
            category=question["category"],
            order=question["order"],
            remaining=len(pending),
        )
        self._publish(session_id, "question:next", data)
        return data

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    async def submit_answer(
        self,
        session_id: str,
        user_id: str,
        question_id: str,
        answer_text: str
    ) -> AnswerSubmittedData:
        session = await self._get_open_session(session_id, user_id)
        question = await self._get_question(session["_id"], question_id)

        text = (answer_text or "").strip()
        if not text:
            raise InvalidInput("Answer text must not be empty")

        answer = await self._store_answer(session["_id"], question["_id"], user_id, text, AnswerSource.TEXT)
        return self._answered(session_id, answer)

    async def transcribe_and_store(
        self,
        session_id: str,
        user_id: str,
        question_id: str,
        audio: bytes,
        filename: str = "answer.webm",
        mime_type: str = "audio/webm"
    ) -> AnswerSubmittedData:
        """Transcribe a recorded answer and store the text like a typed one."""
        session = await self._get_open_session(session_id, user_id)
        question = await self._get_question(session["_id"], question_id)
        if not audio:
            raise InvalidInput("Audio file is empty")

        self._limit(user_id, "transcribeAudio")
        transcript = (await self.gateway.transcribe_audio(audio, filename, mime_type) or "").strip()
        if not transcript:
            raise TranscriptionFailed("Transcription produced no text. Please try recording again.")

        answer = await self._store_answer(
            session["_id"], question["_id"], user_id, transcript, AnswerSource.AUDIO,
            transcription_meta={
                "filename": filename,
                "mime_type": mime_type,
                "size_bytes": len(audio),
                "characters": len(transcript),
            }
        )
        return self._answered(session_id, answer)

    async def timeout_answer(self, session_id: str, user_id: str, question_id: str) -> AnswerSubmittedData:
        """Mark a question as skipped because its time ran out.

        The stored answer is empty and flagged ``timed_out``; grading skips it
        and it scores zero.
        """
        session = await self._get_open_session(session_id, user_id)
        question = await self._get_question(session["_id"], question_id)
        answer = await self._store_answer(
            session["_id"], question["_id"], user_id, "", AnswerSource.TEXT, timed_out=True
        )
        return self._answered(session_id, answer)

    # ------------------------------------------------------------------
    # Grading and reporting
    # ------------------------------------------------------------------

    async def grade_interview(self, session_id: str, user_id: str) -> GradeInterviewData:
        """Grade every stored, non timed-out answer.

        Grading a session that was already graded makes no provider calls
        and returns the stored results. The session is finalized only when
        every question has an answer.
        """
        session = await self.get_owned_session(session_id, user_id)
        questions = await self._load_questions(session["_id"])
        answers = await self._load_answers(session["_id"], user_id)

        if session.get("graded_at"):
            return GradeInterviewData(
                results=self._graded_results(questions, answers),
                finalized=True,
                total_score=session.get("total_score"),
                max_score=session.get("max_score"),
            )

        self._limit(user_id, "gradeAnswer")
        by_id = {q["_id"]: q for q in questions}

        for answer in self._in_question_order(questions, answers):
            if answer.get("timed_out"):
                continue
            question = by_id[answer["question_id"]]
            grade = await self.gateway.grade_answer(
                question["text"], answer.get("answer_text", ""), question.get("max_score", self.question_max_score)
            )
            now = self.clock()
            await self.db.interview_answers.update_one(
                {"_id": answer["_id"]},
                {"$set": {
                    "score": grade.score,
                    "ai_feedback": grade.feedback,
                    "graded_at": now,
                    "updated_at": now,
                }}
            )
            answer.update(score=grade.score, ai_feedback=grade.feedback, graded_at=now)

        results = self._graded_results(questions, answers)
        question_count = session.get("question_count") or len(questions)
        finalized = len(answers) >= question_count

        total_score = max_score = None
        if finalized:
            total_score, max_score = await self._complete(session, questions, answers, graded=True)

        data = GradeInterviewData(
            results=results,
            finalized=finalized,
            total_score=total_score,
            max_score=max_score,
        )
        logger.info("Graded %s answers for interview %s (finalized=%s)", len(results), session_id, finalized)
        self._publish(session_id, "interview:graded", data)
        return data

    async def get_questions_with_status(self, session_id: str, user_id: str) -> List[QuestionStatusData]:
        session = await self.get_owned_session(session_id, user_id)
        questions = await self._load_questions(session["_id"])
        answers = await self._load_answers(session["_id"], user_id)
        # Timed-out questions advance the interview but are not "answered"
        answered_ids = {a["question_id"] for a in answers if not a.get("timed_out")}
        return [
            QuestionStatusData(
                question_id=str(q["_id"]),
                text=q["text"],
                category=q["category"],
                order=q["order"],
                answered=q["_id"] in answered_ids,
            )
            for q in questions
        ]

    async def get_interview_summary(self, session_id: str, user_id: str) -> InterviewSummaryData:
        session = await self.get_owned_session(session_id, user_id)
        questions = await self._load_questions(session["_id"])
        answers = await self._load_answers(session["_id"], user_id)

        live_total, live_max = compute_totals(questions, answers)
        total_score = session.get("total_score")
        max_score = session.get("max_score")

        return InterviewSummaryData(
            session_id=str(session["_id"]),
            status=session["status"],
            total_score=live_total if total_score is None else total_score,
            max_score=live_max if max_score is None else max_score,
            answered=sum(1 for a in answers if not a.get("timed_out")),
            total_questions=len(questions),
        )

    async def list_sessions(self, user_id: str) -> List[InterviewSessionListItem]:
        cursor = self.db.interview_sessions.find({"user_id": user_id}).sort("created_at", -1)
        sessions = await cursor.to_list(length=None)
        return [
            InterviewSessionListItem(
                session_id=str(s["_id"]),
                resume_name=s.get("resume_name"),
                status=s["status"],
                question_count=s.get("question_count", 0),
                total_score=s.get("total_score"),
                max_score=s.get("max_score"),
                started_at=s.get("started_at") or s["created_at"],
                completed_at=s.get("completed_at"),
            )
            for s in sessions
        ]

    async def get_owned_session(self, session_id: str, user_id: str) -> dict:
        """The session document, or NotFound if it is missing or someone else's."""
        oid = to_object_id(session_id)
        session = None
        if oid is not None:
            session = await self.db.interview_sessions.find_one({"_id": oid, "user_id": user_id})
        if not session:
            raise NotFound("Interview session not found", {"session_id": session_id})
        return session

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_open_session(self, session_id: str, user_id: str) -> dict:
        session = await self.get_owned_session(session_id, user_id)
        if session["status"] == InterviewStatus.COMPLETED.value:
            raise AlreadyCompleted(details={"session_id": session_id})
        return session

    async def _get_question(self, session_oid: ObjectId, question_id: str) -> dict:
        oid = to_object_id(question_id)
        question = None
        if oid is not None:
            question = await self.db.interview_questions.find_one({"_id": oid, "session_id": session_oid})
        if not question:
            raise NotFound("Question not found in this interview", {"question_id": question_id})
        return question

    async def _load_questions(self, session_oid: ObjectId) -> List[dict]:
        cursor = self.db.interview_questions.find({"session_id": session_oid}).sort([("order", 1), ("_id", 1)])
        return await cursor.to_list(length=None)

    async def _load_answers(self, session_oid: ObjectId, user_id: str) -> List[dict]:
        cursor = self.db.interview_answers.find({"session_id": session_oid, "user_id": user_id})
        return await cursor.to_list(length=None)

    async def _extract_resume(self, resume: bytes) -> str:
        if not resume:
            raise InvalidInput("Resume file is empty")
        text = (await self.documents.extract_text(resume)).strip()
        if not text:
            raise InvalidInput("No text could be extracted from the resume")
        return text

    async def _store_answer(
        self,
        session_oid: ObjectId,
        question_oid: ObjectId,
        user_id: str,
        text: str,
        source: AnswerSource,
        timed_out: bool = False,
        transcription_meta: Optional[Dict[str, Any]] = None
    ) -> dict:
        """Insert or overwrite the single answer row for this question.

        Overwriting clears any previous grade.
        """
        key = {"session_id": session_oid, "question_id": question_oid, "user_id": user_id}
        now = self.clock()
        update = {
            "$set": {
                "answer_text": text,
                "source": source.value,
                "timed_out": timed_out,
                "transcription_meta": transcription_meta,
                "score": None,
                "ai_feedback": None,
                "graded_at": None,
                "updated_at": now,
            },
            "$setOnInsert": {"created_at": now},
        }
        try:
            return await self.db.interview_answers.find_one_and_update(
                key, update, upsert=True, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            # A concurrent upsert inserted the row first
            return await self.db.interview_answers.find_one_and_update(
                key, update, return_document=ReturnDocument.AFTER
            )

    async def _complete(
        self,
        session: dict,
        questions: List[dict],
        answers: List[dict],
        graded: bool = False
    ) -> Tuple[float, float]:
        total_score, max_score = compute_totals(questions, answers)
        now = self.clock()
        update = {
            "status": InterviewStatus.COMPLETED.value,
            "completed_at": session.get("completed_at") or now,
            "total_score": total_score,
            "max_score": max_score,
            "updated_at": now,
        }
        if graded:
            update["graded_at"] = now
        await self.db.interview_sessions.update_one({"_id": session["_id"]}, {"$set": update})
        session.update(update)
        logger.info("Interview %s completed: %s/%s", session["_id"], total_score, max_score)
        return total_score, max_score

    def _in_question_order(self, questions: List[dict], answers: List[dict]) -> List[dict]:
        position = {q["_id"]: i for i, q in enumerate(questions)}
        known = [a for a in answers if a["question_id"] in position]
        return sorted(known, key=lambda a: position[a["question_id"]])

    def _graded_results(self, questions: List[dict], answers: List[dict]) -> List[GradedAnswerData]:
        return [
            GradedAnswerData(
                answer_id=str(a["_id"]),
                question_id=str(a["question_id"]),
                score=a.get("score") or 0,
                feedback=a.get("ai_feedback") or "",
            )
            for a in self._in_question_order(questions, answers)
            if not a.get("timed_out") and a.get("graded_at")
        ]

    def _answered(self, session_id: str, answer: dict) -> AnswerSubmittedData:
        data = AnswerSubmittedData(
            question_id=str(answer["question_id"]),
            answer_id=str(answer["_id"]),
            timed_out=answer.get("timed_out", False),
        )
        self._publish(session_id, "answer:submitted", data)
        return data

    def _limit(self, user_id: str, operation: str):
        if self.rate_limiter is not None:
            self.rate_limiter.enforce(user_id, operation)

    def _publish(self, session_id: str, event: str, data):
        self.notifier.publish(session_id, event, data.model_dump(by_alias=True, mode="json"))
