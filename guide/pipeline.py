"""
Attraction identification & multilingual narration pipeline.

    image → analysis poll → candidate (confidence gate) → narrative
          → translation → narration
    candidate → image url (independent, best effort)

Only analysis and generation failures abort a run; every later stage
degrades a field of the result instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from guide.dto import (
    AudioPayload,
    Candidate,
    NarrativeSource,
    PipelineResult,
)
from guide.locale_normalizer import LocaleNormalizer
from guide.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PipelineRun:
    response: PipelineResult
    results: List[Candidate] = field(default_factory=list)
    imgurl: Optional[str] = None


@dataclass
class Retranslation:
    text: str
    language: str
    audio: AudioPayload


class AttractionPipeline:
    def __init__(
        self,
        normalizer: LocaleNormalizer,
        poller,
        resolver,
        generator,
        translator,
        narrator,
        image_resolver,
    ):
        self.normalizer = normalizer
        self.poller = poller
        self.resolver = resolver
        self.generator = generator
        self.translator = translator
        self.narrator = narrator
        self.image_resolver = image_resolver

    async def run(self, image_bytes: bytes, language: str) -> PipelineRun:
        """
        Runs one request end to end. Raises AnalysisFailure or
        GenerationFailure; everything else is folded into the result.
        """
        language = language.strip()
        label = await self.poller.analyze(image_bytes)
        candidate = await self.resolver.resolve(label)

        if candidate is None:
            narrative = self.generator.no_match()
            logger.info("No usable candidate, returning the no-match narrative")
            return PipelineRun(
                response=PipelineResult(
                    text=narrative.text,
                    language=language,
                    suggestions=narrative.suggestions,
                ),
            )

        image_url = await self.image_resolver.resolve_image_url(candidate)

        narrative = await self.generator.generate(candidate)
        locale = self.normalizer.normalize(language)
        text = await self.translator.translate(narrative.text, narrative.source_locale, locale)

        result = PipelineResult(
            text=text,
            language=language,
            source=NarrativeSource(title=candidate.title, content=candidate.content),
            image_url=image_url,
        )

        try:
            result.audio = await self.narrator.synthesize(text, locale)
        except Exception as e:
            logger.error(f"Speech synthesis error: {e}")
            result.audio_error = str(e)

        logger.info("Pipeline complete")
        return PipelineRun(response=result, results=[candidate], imgurl=image_url)

    async def retranslate(self, text: str, language: str, source_locale_hint: Optional[str] = None) -> Retranslation:
        """Translation + narration only, for switching the language of an earlier result."""
        language = language.strip()
        locale = self.normalizer.normalize(language)
        translated = await self.translator.translate(text, source_locale_hint, locale)
        audio = await self.narrator.synthesize(translated, locale)
        return Retranslation(text=translated, language=language, audio=audio)

    async def aclose(self):
        collaborators = (
            self.poller.analyzer,
            self.resolver.search_client,
            self.generator.llm,
            self.translator.backend,
            self.narrator.synthesizer,
            self.image_resolver.store,
        )
        for collaborator in collaborators:
            close = getattr(collaborator, "aclose", None)
            if close is not None:
                await close()
