import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware

from currency_recognition.adapters.sources import CameraSource, decode_image
from currency_recognition.app.factory import build_service
from currency_recognition.app.settings import get_settings
from currency_recognition.core.errors import SourceUnavailableError
from currency_recognition.core.models import ConfirmedResult
from currency_recognition.services.detection_service import DetectionService
from currency_recognition.services.live_loop import LiveDetectionLoop
from currency_recognition.services.session import DetectionMode


logger = logging.getLogger(__name__)
settings = get_settings()

camera = CameraSource(settings.camera_index)
detection_service = build_service(settings)
live_loop = LiveDetectionLoop(
    detection_service,
    camera,
    interval_seconds=settings.live_interval_seconds,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        yield
    finally:
        await live_loop.stop()
        camera.close()


app = FastAPI(title="Currency Recognition", version="0.1.0", lifespan=lifespan)

# Allow a local front end to call the API during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_service() -> DetectionService:
    return detection_service


def get_live_loop() -> LiveDetectionLoop:
    return live_loop


def get_camera() -> CameraSource:
    return camera


def _result_payload(result: Optional[ConfirmedResult], service: DetectionService) -> dict:
    if result is None:
        raise HTTPException(status_code=409, detail="Detection superseded by a newer session")
    session = service.current_session
    return jsonable_encoder(
        {
            "session_id": session.session_id,
            "label": result.label,
            "result": result.model_dump(),
            "detections": [detection.model_dump() for detection in session.detections],
        }
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/status")
async def status(
    service: DetectionService = Depends(get_service),
    loop: LiveDetectionLoop = Depends(get_live_loop),
) -> dict:
    snapshot = service.snapshot()
    snapshot["live_running"] = loop.running
    return jsonable_encoder(snapshot)


@app.get("/history")
async def history(
    limit: Optional[int] = Query(default=None, ge=1),
    service: DetectionService = Depends(get_service),
) -> list[dict]:
    return jsonable_encoder([record.model_dump() for record in service.history(limit)])


@app.post("/detect/upload")
async def detect_upload(
    file: UploadFile = File(...),
    service: DetectionService = Depends(get_service),
    loop: LiveDetectionLoop = Depends(get_live_loop),
) -> dict:
    try:
        image = decode_image(await file.read())
    except SourceUnavailableError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    await loop.stop()
    result = await service.run_burst(image, DetectionMode.UPLOAD)
    return _result_payload(result, service)


@app.post("/detect/capture")
async def detect_capture(
    service: DetectionService = Depends(get_service),
    loop: LiveDetectionLoop = Depends(get_live_loop),
    source: CameraSource = Depends(get_camera),
) -> dict:
    await loop.stop()
    try:
        image = await asyncio.to_thread(source.read)
    except SourceUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    result = await service.run_burst(image, DetectionMode.CAPTURE)
    return _result_payload(result, service)


@app.post("/live/start", status_code=202)
async def live_start(
    service: DetectionService = Depends(get_service),
    loop: LiveDetectionLoop = Depends(get_live_loop),
) -> dict:
    loop.start()
    return {"live_running": True, "session_id": service.current_session.session_id}


@app.post("/live/stop", status_code=204)
async def live_stop(loop: LiveDetectionLoop = Depends(get_live_loop)) -> None:
    await loop.stop()


@app.post("/result/clear", status_code=204)
async def result_clear(service: DetectionService = Depends(get_service)) -> None:
    service.clear()


@app.post("/result/replay")
async def result_replay(service: DetectionService = Depends(get_service)) -> dict:
    if not service.replay():
        raise HTTPException(status_code=404, detail="Nothing has been announced yet")
    return {"replayed": True}
