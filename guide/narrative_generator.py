from __future__ import annotations

from typing import Optional

from guide.dto import Candidate, Narrative
from guide.logger import get_logger
from guide.prompt_manager import PromptManager

logger = get_logger(__name__)


class NarrativeGenerator:
    def __init__(self, llm, source_locale: str = "zh-Hant", temperature: float = 0.7):
        self.llm = llm
        self.source_locale = source_locale
        self.temperature = temperature

    def no_match(self) -> Narrative:
        return Narrative(
            text=PromptManager.NO_MATCH_TEXT,
            source_locale=self.source_locale,
            suggestions=list(PromptManager.NO_MATCH_SUGGESTIONS),
            matched=False,
        )

    async def generate(self, candidate: Optional[Candidate]) -> Narrative:
        if candidate is None:
            return self.no_match()

        logger.info(f"🤖 Generating narrative for '{candidate.title}'")
        messages = PromptManager.build_narrative_messages(candidate.content, candidate.image_source)
        # GenerationFailure propagates: the pipeline cannot answer without a narrative
        text = await self.llm.complete(messages, temperature=self.temperature)

        return Narrative(
            text=text,
            source_locale=self.source_locale,
            source_content=candidate.content,
            title=candidate.title,
        )
