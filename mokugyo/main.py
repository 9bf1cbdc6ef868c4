from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import logging
import base64
import random
from typing import Optional

from pydantic import BaseModel

# Configure Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("mokugyo-engine")

app = FastAPI(
    title="Mokugyo Engine",
    version="1.0.0",
    description="Procedural wooden-fish stream generation"
)

# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from mokugyo.core.errors import MokugyoError
from mokugyo.core.io import AudioIO
from mokugyo.core.params import get_param
from mokugyo.core.pipeline import render_stream, render_knock
from mokugyo.params.resolve import resolve_params


class StreamRequest(BaseModel):
    duration_min: int = 1
    seed: Optional[int] = None
    sample_rate: Optional[int] = None


class KnockRequest(BaseModel):
    sample_rate: Optional[int] = None


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "mokugyo-engine"}


@app.post("/generate/stream")
async def generate_stream(req: StreamRequest):
    """
    Generates a knock stream.
    Returns JSON with base64-encoded WAV, the seed used and the trigger instants.
    """
    limit = get_param(resolve_params({}), "service.max_duration_min")
    if req.duration_min > limit:
        raise HTTPException(status_code=422, detail=f"duration_min must be <= {limit}")

    # Outer layer picks the seed so the response can be replayed
    seed = req.seed if req.seed is not None else random.SystemRandom().randrange(2**31)
    try:
        render = render_stream(req.duration_min, sample_rate=req.sample_rate, seed=seed)
    except (MokugyoError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    wav_bytes = AudioIO.to_bytes(render.samples, render.sample_rate)
    return {
        "audio": base64.b64encode(wav_bytes).decode("utf-8"),
        "seed": seed,
        "triggers": [t.instant for t in render.triggers],
        "resolved_params": render.params,
    }


@app.post("/generate/knock")
async def generate_knock(req: KnockRequest):
    """
    Generates one double knock (both repetitions, no leading silence).
    Returns JSON with base64-encoded WAV.
    """
    try:
        resolved = resolve_params({"stream": {"sample_rate": req.sample_rate}} if req.sample_rate else {})
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    sr = get_param(resolved, "stream.sample_rate")

    knock = render_knock(sr)
    wav_bytes = AudioIO.to_bytes(knock.samples, sr)
    return {
        "audio": base64.b64encode(wav_bytes).decode("utf-8"),
        "sample_rate": sr,
    }


if __name__ == "__main__":
    uvicorn.run("mokugyo.main:app", host="0.0.0.0", port=8000, reload=True)
