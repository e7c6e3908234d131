"""Answer questions about a transcript, and condense long transcripts."""

import logging
from typing import Protocol

import openai
from openai import AsyncOpenAI

from vidask.analyzers.transcribe import error_detail
from vidask.errors import CollaboratorError

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = (
    "You condense parts of a video transcript. Summarize the following "
    "excerpt, keeping every fact, name, number and claim a viewer might "
    "ask about. Reply with the summary only."
)


class Answerer(Protocol):
    async def answer(self, transcript: str, question: str) -> str: ...

    async def summarize(self, text: str) -> str: ...


class ChatAnswerer:
    """Chat-completion client used for both answering and summarizing."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4", temperature: float = 0.3):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def _complete(self, stage: str, system: str, user: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
        except openai.OpenAIError as e:
            detail = error_detail(e)
            logger.error("Chat completion (%s) failed: %s", stage, detail)
            raise CollaboratorError(stage, f"OpenAI chat completion failed: {e}", detail) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise CollaboratorError(stage, "OpenAI returned an empty completion")
        return content.strip()

    async def answer(self, transcript: str, question: str) -> str:
        logger.info("Asking %s: %s", self.model, question)
        return await self._complete("answer", f"Transcript: {transcript}", question)

    async def summarize(self, text: str) -> str:
        return await self._complete("summarize", SUMMARY_PROMPT, text)
