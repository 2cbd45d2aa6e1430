import base64
import binascii
import logging
import math
import os

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from mastering.analysis.qc import analyze
from mastering.core.errors import NoAudioLoaded
from mastering.core.io import AudioIO
from mastering.core.types import RenderStatus, SampleBuffer
from mastering.params import (
    EQ_PRESETS,
    OUTPUT_PRESETS,
    PARAM_SCHEMA,
    MasteringSettings,
    apply_eq_preset,
    apply_output_preset,
)
from mastering.render.offline import RenderJob

# Configure Logging
logging.basicConfig(level=os.environ.get("MASTERING_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("mastering")

app = FastAPI(
    title="Mastering Engine",
    version="1.0.0",
    description="Loudness normalization, EQ, dynamics and stereo width for finished mixes"
)

# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json_safe(value):
    """Replace non-finite floats (e.g. -inf dBFS for silence) with None."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def _decode_audio(payload: dict) -> SampleBuffer:
    encoded = payload.get("audio")
    if not encoded:
        raise NoAudioLoaded()
    try:
        return AudioIO.from_bytes(base64.b64decode(encoded, validate=True))
    except (binascii.Error, ValueError, RuntimeError) as e:
        raise HTTPException(status_code=400, detail=f"Could not decode audio: {e}")


def _resolve_settings(payload: dict) -> MasteringSettings:
    settings = MasteringSettings.from_dict(payload.get("settings") or {})
    try:
        if payload.get("eq_preset"):
            settings = apply_eq_preset(settings, payload["eq_preset"])
        if payload.get("output_preset"):
            settings = apply_output_preset(settings, payload["output_preset"])
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0]))
    return settings


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "mastering-engine"}


@app.get("/presets")
async def presets():
    return {
        "eq": EQ_PRESETS,
        "output": OUTPUT_PRESETS,
        "schema": PARAM_SCHEMA,
    }


@app.post("/analyze")
async def analyze_audio(payload: dict):
    """
    QC report for an uploaded file.
    Body: { audio: base64 WAV, ceiling_db?, target_lufs? }
    """
    try:
        buffer = _decode_audio(payload)
    except NoAudioLoaded as e:
        raise HTTPException(status_code=400, detail=str(e))
    report = await run_in_threadpool(
        analyze,
        buffer,
        float(payload.get("ceiling_db", -1.0)),
        float(payload.get("target_lufs", -14.0)),
    )
    return _json_safe(report)


@app.post("/master")
async def master(payload: dict):
    """
    Masters an uploaded file.
    Body: { audio: base64 WAV, settings: {...}, eq_preset?, output_preset? }
    Returns JSON with base64-encoded audio, resolved_settings, report and warnings.
    """
    try:
        source = _decode_audio(payload)
    except NoAudioLoaded as e:
        raise HTTPException(status_code=400, detail=str(e))
    settings = _resolve_settings(payload)

    job = RenderJob(source, settings)
    result = await run_in_threadpool(job.run)
    if result.status != RenderStatus.SUCCESS:
        logger.error("[/master] %s: %s", result.status.value, result.reason)
        raise HTTPException(status_code=500, detail=result.reason)

    report = await run_in_threadpool(analyze, result.buffer, settings.ceiling_db, settings.target_lufs)
    return _json_safe({
        "audio": base64.b64encode(result.data).decode("utf-8"),
        "resolved_settings": settings.to_dict(),
        "report": report,
        "warnings": result.warnings,
    })


if __name__ == "__main__":
    uvicorn.run("mastering.main:app", host="0.0.0.0", port=8000, reload=True)
