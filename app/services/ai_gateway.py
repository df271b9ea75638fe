"""Single entry point for every AI provider call.

Each operation gets the same treatment: up to ``max_attempts`` tries, each
raced against ``timeout`` seconds, with a linear ``retry_delay * attempt``
pause between tries. A timed-out attempt is abandoned, not cancelled on the
provider side.
"""
import asyncio
import json
import logging
import math
import re
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from pydantic import BaseModel

from app.config import Settings
from app.errors import (
    EmptyResponse,
    GenerationFailed,
    GradingDegraded,
    InvalidInput,
    ProviderError,
    ProviderTimeout,
)
from app.models.interview import QuestionCategory
from app.services.providers.base import ChatProvider, ChatTurn, InterviewProvider
from app.services.providers.registry import ModelCatalog, create_chat_provider, create_interview_provider

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FEEDBACK = "Auto-grading failed."

# Bucket key -> category, in presentation order
QUESTION_BUCKETS = (
    ("technical", QuestionCategory.TECHNICAL),
    ("projects", QuestionCategory.PROJECTS),
    ("behavioral", QuestionCategory.BEHAVIORAL),
)

_JSON_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class GeneratedQuestion(BaseModel):
    text: str
    category: QuestionCategory
    order: int


class GradeResult(BaseModel):
    score: float
    feedback: str
    degraded: bool = False


class ChatCompletion(BaseModel):
    text: str
    chunks: List[str]


def flatten_question_buckets(buckets: Any) -> List[GeneratedQuestion]:
    """All technical questions first, then projects, then behavioral.

    ``order`` is the index in the flattened list. Blank or non-string items
    are skipped so the order stays contiguous.
    """
    questions: List[GeneratedQuestion] = []
    if not isinstance(buckets, dict):
        return questions

    for key, category in QUESTION_BUCKETS:
        items = buckets.get(key)
        if not isinstance(items, list):
            continue
        for item in items:
            if not isinstance(item, str) or not item.strip():
                continue
            questions.append(GeneratedQuestion(text=item.strip(), category=category, order=len(questions)))
    return questions


def parse_grade(raw: Optional[str], max_score: int) -> GradeResult:
    """Parse the grader's JSON and clamp the score to ``[0, max_score]``."""
    text = (raw or "").strip()
    fenced = _JSON_FENCE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        parsed = json.loads(text)
    except ValueError as exc:
        raise GradingDegraded("Grader returned invalid JSON") from exc
    if not isinstance(parsed, dict):
        raise GradingDegraded("Grader returned a non-object value")

    try:
        score = float(parsed.get("score"))
    except (TypeError, ValueError) as exc:
        raise GradingDegraded("Grader returned a non-numeric score") from exc
    if math.isnan(score):
        raise GradingDegraded("Grader returned a non-numeric score")

    feedback = parsed.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        feedback = DEFAULT_FEEDBACK

    return GradeResult(score=max(0.0, min(float(max_score), score)), feedback=feedback)


class AIGateway:
    def __init__(
        self,
        interview_provider: InterviewProvider,
        chat_provider: ChatProvider,
        catalog: ModelCatalog,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.interview_provider = interview_provider
        self.chat_provider = chat_provider
        self.catalog = catalog
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIGateway":
        return cls(
            interview_provider=create_interview_provider(settings),
            chat_provider=create_chat_provider(settings),
            catalog=ModelCatalog(settings.chat_provider),
            max_attempts=settings.ai_max_attempts,
            retry_delay=settings.ai_retry_delay_seconds,
            timeout=settings.ai_timeout_seconds,
        )

    async def execute_with_retry(self, operation: Callable[[], Awaitable[T]], operation_name: str, **context) -> T:
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.debug("Attempting %s (attempt %s/%s) %s", operation_name, attempt, self.max_attempts, context)
                result = await asyncio.wait_for(operation(), timeout=self.timeout)
                if attempt > 1:
                    logger.info("%s succeeded on attempt %s", operation_name, attempt)
                return result
            except asyncio.TimeoutError as exc:
                last_error = exc
                logger.warning(
                    "%s timed out after %ss on attempt %s/%s",
                    operation_name, self.timeout, attempt, self.max_attempts
                )
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "%s failed on attempt %s/%s: %s",
                    operation_name, attempt, self.max_attempts, exc
                )

            if attempt < self.max_attempts:
                await self._sleep(self.retry_delay * attempt)

        logger.error("%s failed after %s attempts %s", operation_name, self.max_attempts, context)
        if isinstance(last_error, asyncio.TimeoutError):
            raise ProviderTimeout(
                operation_name, self.max_attempts,
                TimeoutError(f"Operation timed out after {self.timeout}s")
            )
        raise ProviderError(operation_name, self.max_attempts, last_error)

    async def generate_questions(self, text: str) -> List[GeneratedQuestion]:
        buckets = await self.execute_with_retry(
            lambda: self.interview_provider.generate_question_buckets(text),
            "generateQuestions",
            text_length=len(text),
            provider=self.interview_provider.name,
        )
        questions = flatten_question_buckets(buckets)
        if not questions:
            raise GenerationFailed("Failed to generate questions - no questions were created")
        logger.info("Generated %s interview questions", len(questions))
        return questions

    async def grade_answer(self, question: str, answer: str, max_score: int) -> GradeResult:
        """Grade one answer. Never raises for provider or parsing problems."""
        try:
            raw = await self.execute_with_retry(
                lambda: self.interview_provider.grade(question, answer, max_score),
                "gradeAnswer",
                answer_length=len(answer),
                max_score=max_score,
            )
            return parse_grade(raw, max_score)
        except (GradingDegraded, ProviderError) as exc:
            logger.warning("Grading degraded to default: %s", exc)
            return GradeResult(score=0, feedback=DEFAULT_FEEDBACK, degraded=True)

    async def transcribe_audio(self, audio: bytes, filename: str = "answer.webm", mime_type: str = "audio/webm") -> str:
        return await self.execute_with_retry(
            lambda: self.interview_provider.transcribe(audio, filename, mime_type),
            "transcribeAudio",
            size=len(audio),
            mime_type=mime_type,
        )

    async def send_chat_message(
        self,
        history: List[ChatTurn],
        prompt: str,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> ChatCompletion:
        if not self.catalog.validate_model(model):
            raise InvalidInput(f"Unsupported model: {model}", {"model": model})

        async def consume() -> ChatCompletion:
            full_text = ""
            chunks: List[str] = []
            async for fragment in self.chat_provider.stream_message(
                history, prompt, model, temperature=temperature, max_tokens=max_tokens
            ):
                if fragment:
                    full_text += fragment
                    chunks.append(fragment)
            if not full_text.strip():
                raise EmptyResponse("Empty response from AI provider")
            return ChatCompletion(text=full_text, chunks=chunks)

        return await self.execute_with_retry(
            consume,
            "sendMessage",
            history_length=len(history),
            model=model,
            provider=self.chat_provider.name,
        )
