import asyncio
import time
from unittest.mock import AsyncMock

import httpx
import pytest

from guide.candidate_resolver import CandidateResolver
from guide.dto import SearchHit
from guide.errors import AnalysisFailure, GenerationFailure, MetadataLookupFailure, SpeechSynthesisFailure
from guide.prompt_manager import PromptManager
from guide.tts_manager import SynthesisCompleted


class HangingSynthesizer:
    async def speak(self, request):
        await asyncio.sleep(60)


@pytest.mark.asyncio
async def test_clock_tower_in_french(make_pipeline):
    pipeline, mocks = make_pipeline()

    run = await pipeline.run(b"jpeg", "fr")
    body = run.response.model_dump(by_alias=True)

    assert body["language"] == "fr"
    assert body["text"] == "L'histoire de la tour"
    assert body["audio"]["contentType"] == "audio/mp3"
    assert body["audio"]["size"] == 400
    assert body["audioError"] is None
    assert body["source"] == {"title": "Clock Tower", "content": "Clock tower content"}
    assert body["imageUrl"] == "https://cdn.test/clock.jpg"
    assert [c.title for c in run.results] == ["Clock Tower"]
    assert run.imgurl == "https://cdn.test/clock.jpg"

    request = mocks["synthesizer"].requests[0]
    assert request.voice_id == "fr-FR-DeniseNeural"
    assert request.language_tag == "fr-FR"
    mocks["translation"].translate.assert_awaited_once_with("鐘樓的故事", "zh-Hant", "fr")
    mocks["resolver"].resolve.assert_awaited_once_with("Clock Tower")


@pytest.mark.asyncio
@pytest.mark.parametrize("label", [None, "Blurry Thing"])
async def test_no_candidate_short_circuits(make_pipeline, label):
    pipeline, mocks = make_pipeline(label=label, candidate=None)

    run = await pipeline.run(b"jpeg", "fr")

    assert run.response.text == PromptManager.NO_MATCH_TEXT
    assert run.response.suggestions == PromptManager.NO_MATCH_SUGGESTIONS
    assert run.response.language == "fr"
    assert run.response.audio is None
    assert run.results == []
    assert run.imgurl is None

    mocks["llm"].complete.assert_not_awaited()
    mocks["translation"].translate.assert_not_awaited()
    mocks["image_store"].get_metadata.assert_not_awaited()
    assert mocks["synthesizer"].requests == []


@pytest.mark.asyncio
async def test_analysis_failure_aborts(make_pipeline):
    pipeline, mocks = make_pipeline()
    mocks["poller"].analyze.side_effect = AnalysisFailure("job failed")

    with pytest.raises(AnalysisFailure):
        await pipeline.run(b"jpeg", "fr")
    mocks["resolver"].resolve.assert_not_awaited()


@pytest.mark.asyncio
async def test_generation_failure_aborts(make_pipeline):
    llm = AsyncMock()
    llm.complete.side_effect = GenerationFailure("quota exceeded")
    pipeline, mocks = make_pipeline(llm=llm)

    with pytest.raises(GenerationFailure):
        await pipeline.run(b"jpeg", "fr")
    mocks["translation"].translate.assert_not_awaited()


@pytest.mark.asyncio
async def test_translation_failure_keeps_generated_text(make_pipeline):
    backend = AsyncMock()
    backend.translate.side_effect = RuntimeError("translator down")
    pipeline, _ = make_pipeline(translation_backend=backend)

    run = await pipeline.run(b"jpeg", "fr")

    assert run.response.text == "鐘樓的故事"
    assert run.response.audio is not None


@pytest.mark.asyncio
async def test_synthesis_timeout_becomes_audio_error(make_pipeline):
    pipeline, _ = make_pipeline(synthesizer=HangingSynthesizer())
    pipeline.narrator.timeout_ms = 50

    started = time.monotonic()
    run = await pipeline.run(b"jpeg", "fr")

    assert time.monotonic() - started < 1.0
    assert run.response.audio is None
    assert "timed out" in run.response.audio_error
    assert run.response.text == "L'histoire de la tour"
    assert run.response.language == "fr"


@pytest.mark.asyncio
async def test_synthesis_cancellation_becomes_audio_error(make_pipeline):
    synth = AsyncMock()
    synth.speak.side_effect = SpeechSynthesisFailure("HTTP 401")
    pipeline, _ = make_pipeline(synthesizer=synth)

    run = await pipeline.run(b"jpeg", "fr")
    assert run.response.audio is None
    assert "HTTP 401" in run.response.audio_error


@pytest.mark.asyncio
async def test_unsupported_speech_locale_becomes_audio_error(make_pipeline):
    pipeline, mocks = make_pipeline()
    run = await pipeline.run(b"jpeg", "tlh")

    assert run.response.audio is None
    assert "tlh" in run.response.audio_error
    mocks["translation"].translate.assert_awaited_once()


@pytest.mark.asyncio
async def test_image_lookup_failure_leaves_image_empty(make_pipeline):
    store = AsyncMock()
    store.get_metadata.side_effect = MetadataLookupFailure("403")
    pipeline, _ = make_pipeline(image_store=store)

    run = await pipeline.run(b"jpeg", "fr")
    assert run.imgurl is None
    assert run.response.image_url is None
    assert run.response.audio is not None


@pytest.mark.asyncio
async def test_low_confidence_candidate_never_reaches_generation(make_pipeline):
    search = AsyncMock()
    search.search.return_value = [SearchHit(document={"title": "Clock Tower", "content_text": "..."}, score=1.5)]
    pipeline, mocks = make_pipeline()
    pipeline.resolver = CandidateResolver(search, threshold=2.0)

    run = await pipeline.run(b"jpeg", "en")
    assert run.response.text == PromptManager.NO_MATCH_TEXT
    mocks["llm"].complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_retranslate_runs_translation_and_narration_only(make_pipeline):
    pipeline, mocks = make_pipeline()

    result = await pipeline.retranslate("鐘樓的故事", "fr")

    assert result.text == "L'histoire de la tour"
    assert result.language == "fr"
    assert result.audio.content_type == "audio/mp3"
    mocks["poller"].analyze.assert_not_awaited()
    mocks["llm"].complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_aclose_closes_collaborators(make_pipeline):
    pipeline, mocks = make_pipeline()
    await pipeline.aclose()
    mocks["poller"].analyzer.aclose.assert_awaited_once()
    mocks["translation"].aclose.assert_awaited_once()


class InterleavingSynthesizer:
    def __init__(self):
        self.requests = []

    async def speak(self, request):
        await asyncio.sleep(0)
        self.requests.append(request)
        return SynthesisCompleted(audio=b"\x00" * 400, duration_ms=100)


@pytest.mark.asyncio
async def test_concurrent_runs_keep_their_own_voice(make_pipeline):
    backend = AsyncMock()
    backend.translate.side_effect = lambda text, source, target: f"[{target}] {text}"
    pipeline, mocks = make_pipeline(translation_backend=backend, synthesizer=InterleavingSynthesizer())

    languages = ["fr", "de", "ja", "fr", "en"]
    runs = await asyncio.gather(*(pipeline.run(b"jpeg", lang) for lang in languages))

    expected = {
        "fr": ("fr-FR", "fr-FR-DeniseNeural"),
        "de": ("de-DE", "de-DE-KatjaNeural"),
        "ja": ("ja-JP", "ja-JP-NanamiNeural"),
        "en": ("en-US", "en-US-AriaNeural"),
    }
    assert [run.response.language for run in runs] == languages
    assert all(run.response.audio is not None for run in runs)

    requests = mocks["synthesizer"].requests
    assert len(requests) == len(languages)
    for request in requests:
        lang = request.text.split("]")[0].lstrip("[")
        assert (request.language_tag, request.voice_id) == expected[lang]


@pytest.mark.asyncio
async def test_default_language_narrates_in_traditional_chinese(make_pipeline):
    pipeline, mocks = make_pipeline()

    run = await pipeline.run(b"jpeg", "zh")

    # "zh" is the Traditional Chinese narrative itself, so it is read by the zh-TW voice, not zh-CN.
    request = mocks["synthesizer"].requests[0]
    assert (request.language_tag, request.voice_id) == ("zh-TW", "zh-TW-HsiaoChenNeural")
    assert run.response.text == "鐘樓的故事"
    mocks["translation"].translate.assert_not_awaited()


@pytest.mark.asyncio
async def test_malformed_speech_url_becomes_audio_error(make_pipeline):
    synth = AsyncMock()
    synth.speak.side_effect = httpx.InvalidURL("Invalid URL component 'host'")
    pipeline, _ = make_pipeline(synthesizer=synth)

    run = await pipeline.run(b"jpeg", "fr")
    assert run.response.audio is None
    assert "Invalid URL" in run.response.audio_error
    assert run.response.text == "L'histoire de la tour"
