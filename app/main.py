from __future__ import annotations

from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, File, Form, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from guide.AsyncExternalLLM import AsyncExternalLLM
from guide.UniversalTranslator import (
    AzureTranslatorBackend,
    GoogleTranslatorBackend,
    UniversalTranslator,
)
from guide.analysis_poller import AnalysisPoller, VisionAnalyzer
from guide.candidate_resolver import CandidateResolver, SearchIndexClient
from guide.config import Settings
from guide.dto import AnalyzeImageResponse, TranslateRequest, TranslateResponse
from guide.errors import AnalysisFailure, GenerationFailure, GuideError, UploadMissing
from guide.image_resolver import BlobMetadataStore, ImageResolver
from guide.locale_normalizer import LocaleNormalizer
from guide.logger import get_logger
from guide.narrative_generator import NarrativeGenerator
from guide.pipeline import AttractionPipeline
from guide.tts_manager import AzureSpeechSynthesizer, Narrator

logger = get_logger("app")

# -----------------------------
# FastAPI app
# -----------------------------
app = FastAPI(title="Attraction Guide")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------
# Startup
# -----------------------------
def build_translation_backend(settings: Settings):
    if settings.translation_provider == "google":
        return GoogleTranslatorBackend()
    return AzureTranslatorBackend(
        endpoint=settings.translation_endpoint,
        api_key=settings.translation_key,
        region=settings.translation_region,
    )


def build_pipeline(settings: Settings) -> AttractionPipeline:
    """Wire the long-lived collaborators. They hold only immutable settings."""
    poller = AnalysisPoller(
        VisionAnalyzer(
            endpoint=settings.vision_endpoint,
            api_key=settings.vision_key,
            analyzer_id=settings.vision_analyzer_id,
            api_version=settings.vision_api_version,
            label_field=settings.vision_label_field,
        ),
        poll_interval=settings.poll_interval_seconds,
        max_attempts=settings.poll_max_attempts,
    )
    resolver = CandidateResolver(
        SearchIndexClient(
            endpoint=settings.search_endpoint,
            api_key=settings.search_key,
            index=settings.search_index,
            api_version=settings.search_api_version,
            semantic_configuration=settings.search_semantic_configuration,
            top=settings.search_top,
        ),
        threshold=settings.search_score_threshold,
        title_field=settings.search_title_field,
        content_field=settings.search_content_field,
        image_source_field=settings.search_image_source_field,
    )
    generator = NarrativeGenerator(
        AsyncExternalLLM(
            endpoint=settings.openai_endpoint,
            api_key=settings.openai_key,
            deployment=settings.openai_deployment,
            api_version=settings.openai_api_version,
        ),
        source_locale=settings.generation_locale,
    )
    translator = UniversalTranslator(
        build_translation_backend(settings),
        default_source=settings.generation_locale,
    )
    narrator = Narrator(
        AzureSpeechSynthesizer(api_key=settings.speech_key, region=settings.speech_region),
        timeout_ms=settings.speech_timeout_ms,
    )
    image_resolver = ImageResolver(
        BlobMetadataStore(settings.metadata_container_url, settings.metadata_sas_token),
        url_field=settings.metadata_url_field,
    )
    return AttractionPipeline(
        normalizer=LocaleNormalizer.from_file(),
        poller=poller,
        resolver=resolver,
        generator=generator,
        translator=translator,
        narrator=narrator,
        image_resolver=image_resolver,
    )


@app.on_event("startup")
async def startup():
    settings = Settings.from_env()
    app.state.settings = settings
    app.state.pipeline = build_pipeline(settings)
    logger.info("✅ Attraction guide services initialized")


@app.on_event("shutdown")
async def shutdown():
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is not None:
        await pipeline.aclose()


# -----------------------------
# Error responses
# -----------------------------
@app.exception_handler(UploadMissing)
async def upload_missing_handler(request: Request, exc: UploadMissing):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


@app.exception_handler(AnalysisFailure)
@app.exception_handler(GenerationFailure)
async def fatal_pipeline_handler(request: Request, exc: GuideError):
    logger.error(f"❌ Pipeline failed: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": f"Pipeline failed: {exc}"},
    )


# -----------------------------
# HTTP Endpoints
# -----------------------------
@app.post("/api/analyzeimage", response_model=AnalyzeImageResponse)
async def analyze_image(
        image: Optional[UploadFile] = File(None),
        language: Optional[str] = Form(None),
):
    if image is None:
        raise UploadMissing("Please upload an image file")

    image_bytes = await image.read()
    if not image_bytes:
        raise UploadMissing("Uploaded image is empty")

    language = language or app.state.settings.default_language
    logger.info(f"📷 Received image '{image.filename}' ({len(image_bytes)} bytes), language={language}")

    run = await app.state.pipeline.run(image_bytes, language)
    return AnalyzeImageResponse(results=run.results, response=run.response, imgurl=run.imgurl)


@app.post("/api/translate", response_model=TranslateResponse)
async def translate(req: TranslateRequest):
    if not req.text:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "text is required"})

    try:
        result = await app.state.pipeline.retranslate(req.text, req.language)
    except (GuideError, httpx.HTTPError) as e:
        logger.error(f"❌ Re-translation to '{req.language}' failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"Translation failed: {e}"},
        )

    return TranslateResponse(text=result.text, language=result.language, audio=result.audio)


@app.get("/api/languages")
async def languages():
    try:
        return await app.state.pipeline.translator.languages()
    except Exception as e:
        logger.error(f"❌ Could not load language catalog: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"Could not load languages: {e}"},
        )


@app.get("/api/health")
async def health():
    speech = await app.state.pipeline.narrator.check_health()
    return {"speech": speech}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
