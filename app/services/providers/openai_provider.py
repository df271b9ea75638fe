"""OpenAI-compatible providers (OpenAI itself and Groq's compatible endpoint)."""
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import AsyncOpenAI

from app.services.providers.base import ChatTurn
from app.utils.prompt_generator import (
    CHAT_SYSTEM_PROMPT,
    GRADER_SYSTEM_PROMPT,
    QUESTION_GENERATION_PROMPT,
    QUESTION_SCHEMA,
    generate_grading_prompt,
)

logger = logging.getLogger(__name__)


class OpenAIInterviewProvider:
    """Question generation, grading and transcription over the chat completions API."""

    def __init__(self, client: AsyncOpenAI, model: str, transcription_model: str, name: str = "openai"):
        self.client = client
        self.model = model
        self.transcription_model = transcription_model
        self.name = name

    async def generate_question_buckets(self, resume_text: str) -> Dict[str, Any]:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": QUESTION_GENERATION_PROMPT},
                {"role": "user", "content": resume_text},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "interview_questions", "schema": QUESTION_SCHEMA},
            },
        )
        content = response.choices[0].message.content or "{}"
        return json.loads(content)

    async def grade(self, question: str, answer: str, max_score: int) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": GRADER_SYSTEM_PROMPT},
                {"role": "user", "content": generate_grading_prompt(question, answer, max_score)},
            ],
            temperature=0.0,
        )
        return response.choices[0].message.content or ""

    async def transcribe(self, audio: bytes, filename: str, mime_type: str) -> str:
        response = await self.client.audio.transcriptions.create(
            file=(filename, audio, mime_type),
            model=self.transcription_model,
        )
        return response.text


class OpenAIChatProvider:
    """Streaming chat over the chat completions API."""

    def __init__(self, client: AsyncOpenAI, name: str = "openai"):
        self.client = client
        self.name = name

    async def stream_message(
        self,
        history: List[ChatTurn],
        prompt: str,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> AsyncIterator[str]:
        messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
        for turn in history:
            messages.append({
                "role": "assistant" if turn.role == "model" else "user",
                "content": turn.text
            })
        messages.append({"role": "user", "content": prompt})

        options = {}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["max_tokens"] = max_tokens

        stream = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            stream=True,
            **options
        )
        async for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content
