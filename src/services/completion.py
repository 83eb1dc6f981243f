"""Language-model collaborator: chat completion over Gemini.

complete(deployment, messages) takes role/content chat messages and returns a
typed Completion. `system` messages become the Gemini system instruction;
`user` and `assistant` messages become conversation contents.
"""

import asyncio
from typing import Optional, Protocol, Sequence

from google import genai
from google.genai import types

from src.models.models import ChatMessage, Completion, CompletionChoice
from src.services.errors import CompletionError
from src.utils.logger import logger


class CompletionService(Protocol):
    """Language model collaborator. Raises CompletionError on failure."""

    async def complete(self, deployment: str, messages: Sequence[ChatMessage]) -> Completion:
        ...


def _candidate_text(candidate) -> str:
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(part.text for part in parts if getattr(part, "text", None))


class GeminiCompletionService:
    """CompletionService backed by Gemini generate_content."""

    def __init__(
        self,
        api_key: str,
        temperature: float = 0.2,
        max_output_tokens: int = 512,
        client: Optional[genai.Client] = None,
    ) -> None:
        if client is None and not api_key:
            raise ValueError("GEMINI_API_KEY is required")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client = client or genai.Client(api_key=api_key)

    def _build_request(self, messages: Sequence[ChatMessage]) -> tuple[list[types.Content], types.GenerateContentConfig]:
        system_parts = [m.content for m in messages if m.role == "system"]
        contents = [
            types.Content(
                role="model" if m.role == "assistant" else "user",
                parts=[types.Part.from_text(text=m.content)],
            )
            for m in messages
            if m.role != "system"
        ]
        if not contents:
            raise CompletionError("At least one user message is required")

        generation_config = types.GenerateContentConfig(
            system_instruction="\n".join(system_parts) or None,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )
        return contents, generation_config

    async def complete(self, deployment: str, messages: Sequence[ChatMessage]) -> Completion:
        """Run a chat completion.

        Args:
            deployment: Gemini model id.
            messages: Ordered chat messages (system, user, assistant).

        Returns:
            Completion with one choice per returned candidate.

        Raises:
            CompletionError: On API failure (quota, auth, network).
        """
        contents, generation_config = self._build_request(messages)
        logger.debug(f"Calling {deployment} with {len(contents)} message(s)")

        try:
            response = await asyncio.to_thread(
                self._client.models.generate_content,
                model=deployment,
                contents=contents,
                config=generation_config,
            )
        except Exception as e:
            raise CompletionError(f"Gemini completion failed: {e}") from e

        choices = [
            CompletionChoice(message=ChatMessage(role="assistant", content=_candidate_text(candidate)))
            for candidate in (response.candidates or [])
        ]
        return Completion(choices=choices)
