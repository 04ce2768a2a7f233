from unittest.mock import AsyncMock

import pytest

from guide.UniversalTranslator import UniversalTranslator
from guide.dto import Candidate
from guide.image_resolver import ImageResolver
from guide.locale_normalizer import LocaleNormalizer
from guide.narrative_generator import NarrativeGenerator
from guide.pipeline import AttractionPipeline
from guide.tts_manager import Narrator, SynthesisCompleted

CLOCK_TOWER = Candidate(title="Clock Tower", content="Clock tower content", score=4.2)


class RecordingSynthesizer:
    def __init__(self):
        self.requests = []

    async def speak(self, request):
        self.requests.append(request)
        return SynthesisCompleted(audio=b"\x00" * 400, duration_ms=100)


def build_pipeline(label="Clock Tower", candidate=CLOCK_TOWER, synthesizer=None, translation_backend=None,
                   image_store=None, llm=None):
    poller = AsyncMock()
    poller.analyze.return_value = label

    resolver = AsyncMock()
    resolver.resolve.return_value = candidate

    if llm is None:
        llm = AsyncMock()
        llm.complete.return_value = "鐘樓的故事"

    if translation_backend is None:
        translation_backend = AsyncMock()
        translation_backend.translate.return_value = "L'histoire de la tour"

    if image_store is None:
        image_store = AsyncMock()
        image_store.get_metadata.return_value = {"imageurl": "https://cdn.test/clock.jpg"}

    if synthesizer is None:
        synthesizer = RecordingSynthesizer()

    pipeline = AttractionPipeline(
        normalizer=LocaleNormalizer.from_file(),
        poller=poller,
        resolver=resolver,
        generator=NarrativeGenerator(llm, source_locale="zh-Hant"),
        translator=UniversalTranslator(translation_backend, default_source="zh-Hant"),
        narrator=Narrator(synthesizer, timeout_ms=30000),
        image_resolver=ImageResolver(image_store),
    )
    return pipeline, {
        "poller": poller,
        "resolver": resolver,
        "llm": llm,
        "translation": translation_backend,
        "image_store": image_store,
        "synthesizer": synthesizer,
    }


@pytest.fixture
def make_pipeline():
    """Pipeline with real policy components and mocked external collaborators."""
    return build_pipeline
