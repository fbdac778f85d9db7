# api/api.py
import io
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import cv2
import numpy as np
from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from PIL import Image

from happylens.config import load_config
from happylens.core import HappinessAnalyzer, first_face, label_for
from happylens.detector import FaceMeshDetector
from happylens.models import (
    AnalysisResult,
    AnalyzeResponse,
    MalformedInputError,
    ScoreRequest,
    ScoreResponse,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# ------------ Config ------------
SCORING_CONFIG, STREAM_CONFIG = load_config()

detector = FaceMeshDetector(static_image_mode=True, max_num_faces=STREAM_CONFIG.max_num_faces)
analyzer = HappinessAnalyzer(config=SCORING_CONFIG, detector=detector)


@asynccontextmanager
async def lifespan(_: FastAPI):
    detector.open()
    try:
        yield
    finally:
        detector.close()


# ------------ App ------------
app = FastAPI(title="HappyLens Landmark Happiness API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)


def get_analyzer() -> HappinessAnalyzer:
    return analyzer


# ------------ Helpers ------------
def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


async def _read_image(file: UploadFile) -> Image.Image:
    try:
        raw = await file.read()
        return Image.open(io.BytesIO(raw)).convert("RGB")
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid image file")


def _basename_from(filename: Optional[str]) -> str:
    if not filename:
        return f"capture_{datetime.now().strftime('%Y%m%d_%H%M%S')}.jpg"
    return filename


# ------------ Endpoints ------------
@app.get("/health")
async def health(an: HappinessAnalyzer = Depends(get_analyzer)):
    return {
        "status": "ok",
        "time": _now_iso(),
        "detector_open": bool(getattr(an.detector, "is_open", False)),
    }


@app.get("/config")
async def get_config(an: HappinessAnalyzer = Depends(get_analyzer)):
    return an.config.to_dict()


@app.post("/score", response_model=ScoreResponse)
async def score(req: ScoreRequest, an: HappinessAnalyzer = Depends(get_analyzer)):
    try:
        res = an.score([lm.to_point() for lm in req.landmarks], req.width, req.height)
    except MalformedInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    label, emoji = label_for(res.score)
    return ScoreResponse(
        score=res.score,
        status=res.status,
        mouth_curvature=res.mouth_curvature,
        eye_narrowing=res.eye_narrowing,
        mouth_width=res.mouth_width,
        label=label,
        emoji=emoji,
    )


@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze(file: UploadFile = File(...), source: str = "api",
                  an: HappinessAnalyzer = Depends(get_analyzer)):
    pil = await _read_image(file)
    try:
        res: AnalysisResult = an.analyze_image(pil, origin_name=_basename_from(file.filename), source=source)
    except MalformedInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return AnalyzeResponse(**res.__dict__)


@app.post("/annotate")
async def annotate(file: UploadFile = File(...), an: HappinessAnalyzer = Depends(get_analyzer)):
    pil = await _read_image(file)
    img_rgb = np.array(pil)
    try:
        face = first_face(an.detect(img_rgb))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))

    frame_bgr = cv2.cvtColor(img_rgb, cv2.COLOR_RGB2BGR)
    # landmarks are drawn mirrored, so mirror the photo too
    frame_bgr = np.ascontiguousarray(cv2.flip(frame_bgr, 1))
    annotated = an.annotate(frame_bgr, face)
    ok, buf = cv2.imencode(".png", annotated)
    if not ok:
        raise HTTPException(status_code=500, detail="Could not encode annotated image")
    return Response(content=buf.tobytes(), media_type="image/png")
