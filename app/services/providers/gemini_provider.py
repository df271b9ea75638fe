"""Gemini chat provider."""
from typing import AsyncIterator, List, Optional

from google import genai
from google.genai import types

from app.services.providers.base import ChatTurn
from app.utils.prompt_generator import CHAT_SYSTEM_PROMPT


class GeminiChatProvider:
    name = "gemini"

    def __init__(self, client: genai.Client):
        self.client = client

    async def stream_message(
        self,
        history: List[ChatTurn],
        prompt: str,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> AsyncIterator[str]:
        chat = self.client.aio.chats.create(
            model=model,
            history=[
                types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
                for turn in history
            ],
            config=types.GenerateContentConfig(
                system_instruction=CHAT_SYSTEM_PROMPT,
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )
        async for chunk in await chat.send_message_stream(prompt.strip()):
            if chunk.text:
                yield chunk.text
