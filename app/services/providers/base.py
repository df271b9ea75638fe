"""Capabilities every AI provider implementation offers.

Providers only talk to their SDK. Retries, timeouts, parsing and validation
live in ``AIGateway``.
"""
from typing import Any, AsyncIterator, Dict, List, Literal, Optional, Protocol

from pydantic import BaseModel


class ChatTurn(BaseModel):
    """One prior message in provider vocabulary."""
    role: Literal["user", "model"]
    text: str


class InterviewProvider(Protocol):
    name: str

    async def generate_question_buckets(self, resume_text: str) -> Dict[str, Any]:
        """Return the parsed ``{technical, projects, behavioral}`` object."""
        ...

    async def grade(self, question: str, answer: str, max_score: int) -> str:
        """Return the grader's raw text output."""
        ...

    async def transcribe(self, audio: bytes, filename: str, mime_type: str) -> str:
        ...


class ChatProvider(Protocol):
    name: str

    def stream_message(
        self,
        history: List[ChatTurn],
        prompt: str,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> AsyncIterator[str]:
        """Yield response text fragments as they arrive."""
        ...
