from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from typing import Optional, Union
from xml.sax.saxutils import escape, quoteattr

import httpx

from guide.dto import AudioPayload, CanonicalLocale
from guide.errors import SpeechSynthesisFailure, SpeechTimeout, UnsupportedLocale
from guide.logger import get_logger

logger = get_logger(__name__)

OUTPUT_FORMAT = "audio-16khz-32kbitrate-mono-mp3"
CONTENT_TYPE = "audio/mp3"
# Constant bitrate, so duration follows from the byte count
BITS_PER_SECOND = {OUTPUT_FORMAT: 32000}


@dataclass(frozen=True)
class SynthesisRequest:
    """Everything one synthesis call needs. Never shared or mutated between calls."""
    text: str
    language_tag: str
    voice_id: str
    output_format: str = OUTPUT_FORMAT

    def to_ssml(self) -> str:
        return (
            f"<speak version='1.0' xml:lang={quoteattr(self.language_tag)}>"
            f"<voice name={quoteattr(self.voice_id)}>{escape(self.text)}</voice>"
            f"</speak>"
        )


@dataclass(frozen=True)
class SynthesisCompleted:
    audio: bytes
    duration_ms: int


@dataclass(frozen=True)
class SynthesisCanceled:
    reason: str
    details: str = ""


SynthesisOutcome = Union[SynthesisCompleted, SynthesisCanceled]


def estimate_duration_ms(audio: bytes, output_format: str = OUTPUT_FORMAT) -> int:
    bps = BITS_PER_SECOND.get(output_format)
    if not bps:
        return 0
    return int(len(audio) * 8 * 1000 / bps)


class AzureSpeechSynthesizer:
    """
    Text-to-speech over the Azure Speech REST API.

    A 200 response is a completed synthesis; any other HTTP status means the
    service refused the request and is reported as a cancellation. Transport
    errors propagate to the caller unchanged.
    """

    def __init__(self, api_key: str, region: str, client: Optional[httpx.AsyncClient] = None):
        self.region = region
        self.base_url = f"https://{region}.tts.speech.microsoft.com/cognitiveservices"
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=None)

    async def speak(self, request: SynthesisRequest) -> SynthesisOutcome:
        response = await self._client.post(
            f"{self.base_url}/v1",
            headers={
                "Ocp-Apim-Subscription-Key": self.api_key,
                "Content-Type": "application/ssml+xml",
                "X-Microsoft-OutputFormat": request.output_format,
                "User-Agent": "attraction-guide",
            },
            content=request.to_ssml().encode("utf-8"),
        )

        if response.status_code != 200:
            return SynthesisCanceled(
                reason=f"HTTP {response.status_code}",
                details=response.text.strip(),
            )

        audio = response.content
        return SynthesisCompleted(audio=audio, duration_ms=estimate_duration_ms(audio, request.output_format))

    async def list_voices(self) -> list:
        response = await self._client.get(
            f"{self.base_url}/voices/list",
            headers={"Ocp-Apim-Subscription-Key": self.api_key},
            timeout=15.0,
        )
        response.raise_for_status()
        return response.json()

    async def aclose(self):
        await self._client.aclose()


class Narrator:
    def __init__(self, synthesizer, timeout_ms: int = 30000):
        self.synthesizer = synthesizer
        self.timeout_ms = timeout_ms

    async def synthesize(
        self, text: str, locale: CanonicalLocale, timeout_ms: Optional[int] = None
    ) -> AudioPayload:
        timeout_ms = timeout_ms or self.timeout_ms
        if not locale.speech_supported:
            raise UnsupportedLocale(locale.requested)

        request = SynthesisRequest(
            text=text,
            language_tag=locale.speech_language_tag,
            voice_id=locale.speech_voice_id,
        )
        logger.info(f"🔊 Synthesizing {len(text)} chars with {request.voice_id} ({request.language_tag})")

        try:
            # wait_for cancels the in-flight call when the timer wins
            outcome = await asyncio.wait_for(self.synthesizer.speak(request), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.error(f"Speech synthesis timed out ({timeout_ms}ms)")
            raise SpeechTimeout(timeout_ms)

        if isinstance(outcome, SynthesisCanceled):
            logger.error(f"❌ Speech synthesis canceled: {outcome.reason} {outcome.details}")
            raise SpeechSynthesisFailure(outcome.reason, outcome.details)

        logger.info(f"✅ Synthesized {len(outcome.audio)} bytes, {outcome.duration_ms}ms")
        return AudioPayload(
            content=base64.b64encode(outcome.audio).decode(),
            content_type=CONTENT_TYPE,
            duration=outcome.duration_ms,
            size=len(outcome.audio),
        )

    async def check_health(self) -> dict:
        """Speech service availability, checked via the voice list."""
        try:
            voices = await self.synthesizer.list_voices()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 401:
                logger.error("Speech service rejected the key (401)")
            elif status == 403:
                logger.error("Speech service refused access, check subscription quota (403)")
            return {"healthy": False, "voices": 0, "error": f"HTTP {status}"}
        except httpx.HTTPError as e:
            logger.error(f"❌ Speech service unreachable: {e}")
            return {"healthy": False, "voices": 0, "error": str(e)}

        logger.info(f"✅ Speech service healthy ({len(voices)} voices)")
        return {"healthy": True, "voices": len(voices)}
