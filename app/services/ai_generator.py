from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from openai import OpenAI, OpenAIError

logger = logging.getLogger(__name__)

MIN_SOURCE_CHARS = 10
MAX_SOURCE_CHARS = 10000
MAX_FRONT_CHARS = 200
MAX_BACK_CHARS = 500

_FENCE = re.compile(r"```json\s*|\s*```")

PROMPT_TEMPLATE = """Create a single educational flashcard from the following text. Return ONLY a JSON object with "front" and "back" fields. The front should be a clear question or prompt, and the back should be a comprehensive but concise answer.

Text to create flashcard from:
{source_text}

Return format:
{{
  "front": "Question or prompt here",
  "back": "Answer or explanation here"
}}"""


class AIServiceNotConfigured(Exception):
    pass


class AIGenerationError(Exception):
    pass


@dataclass
class GeneratedCard:
    front: str
    back: str
    model: str


def clean_source_text(source_text: Optional[str]) -> str:
    text = (source_text or "").strip()
    if not text:
        raise ValueError("Source text is required")
    if len(text) < MIN_SOURCE_CHARS:
        raise ValueError(f"Source text must be at least {MIN_SOURCE_CHARS} characters long")
    if len(text) > MAX_SOURCE_CHARS:
        raise ValueError(f"Source text must be less than {MAX_SOURCE_CHARS:,} characters")
    return text


def parse_card_reply(content: Optional[str]) -> tuple[str, str]:
    """
    Extrait (front, back) de la réponse du modèle (JSON, éventuellement entouré de ```json).
    """
    cleaned = _FENCE.sub("", content or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AIGenerationError("AI generated invalid response format") from e

    if not isinstance(data, dict):
        raise AIGenerationError("AI generated invalid response format")

    front = str(data.get("front") or "").strip()
    back = str(data.get("back") or "").strip()
    if not front or not back:
        raise AIGenerationError("AI failed to generate valid flashcard content")
    if len(front) > MAX_FRONT_CHARS or len(back) > MAX_BACK_CHARS:
        raise AIGenerationError("Generated flashcard content exceeds size limits")
    return front, back


class CandidateGenerator:
    """
    Génère une carte candidate via un endpoint compatible OpenAI (OpenRouter par défaut).
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: Optional[str] = None,
        model: str = "anthropic/claude-3-haiku:beta",
        timeout: float = 30.0,
        client=None,
    ):
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    @property
    def configured(self) -> bool:
        return self._client is not None

    def generate_single(self, source_text: str) -> GeneratedCard:
        text = clean_source_text(source_text)

        if not self.configured:
            logger.error("AI_API_KEY not set, cannot generate flashcards")
            raise AIServiceNotConfigured("AI service is not configured")

        try:
            comp = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": PROMPT_TEMPLATE.format(source_text=text)}],
                response_format={"type": "json_object"},
                temperature=0.7,
                max_tokens=500,
            )
        except OpenAIError as e:
            logger.warning("AI provider error: %s", e)
            raise AIGenerationError("Failed to generate flashcard with AI") from e

        if not comp.choices or comp.choices[0].message is None:
            raise AIGenerationError("Invalid response from AI service")

        front, back = parse_card_reply(comp.choices[0].message.content)
        return GeneratedCard(front=front, back=back, model=getattr(comp, "model", None) or self.model)
