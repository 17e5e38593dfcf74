"""FastAPI service driving a HarmonicProcessor.

A capture client POSTs per-frame region sums to `/ingest`; the service feeds
them to the processor and periodically runs the selected estimator (spectral
or zero-crossing count), pushing metrics to WebSocket clients.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .combiner import ColorChannel
from .events import Event
from .processor import HarmonicProcessor
from .thresholds import Alpha, Sex

logger = logging.getLogger(__name__)


@dataclass
class Params:
    mode: str = "single"  # single | dual
    est: str = "spectral"  # spectral | zerocross
    interval_sec: float = 0.5
    threshold_dir: str = "thresholds"  # lookups are confined to this directory


@dataclass
class State:
    params: Params
    processor: HarmonicProcessor
    metrics: dict
    spectrum: list


class ControlModel(BaseModel):
    mode: Optional[str] = Field(None, pattern=r"^(single|dual)$")
    est: Optional[str] = Field(None, pattern=r"^(spectral|zerocross)$")
    pca: Optional[bool] = None
    channel: Optional[ColorChannel] = None
    zero_crossing_target: Optional[int] = Field(None, ge=2, le=64)


class IngestModel(BaseModel):
    # [red_sum, green_sum, blue_sum, pixel_area, frame_ms]
    frames: list[tuple[float, float, float, float, float]]


class ThresholdModel(BaseModel):
    # file name inside the configured threshold directory
    name: str = Field(..., pattern=r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*\.xml$")
    sex: Sex
    age: int = Field(..., ge=0, le=150)
    alpha: Alpha = Alpha.FIVE_PERCENTS


def make_app(
    datalength: int = 256,
    bufferlength: int = 256,
    threshold_dir: Optional[Path] = None,
) -> FastAPI:
    app = FastAPI(title="Harmonic Processor Service", version="0.1.0")

    params = Params()
    if threshold_dir is not None:
        params.threshold_dir = str(threshold_dir)
    state = State(
        params=params,
        processor=HarmonicProcessor(datalength, bufferlength),
        metrics={"status": "init"},
        spectrum=[],
    )

    def on_frequency(bpm: float, snr: float, in_range: bool) -> None:
        state.metrics = {
            "status": "ok",
            "bpm": float(bpm),
            "snr": float(snr),
            "in_range": bool(in_range),
            "est": state.params.est,
        }

    def on_too_noisy(snr: float) -> None:
        state.metrics = {
            "status": "too_noisy",
            "bpm": None,
            "snr": float(snr),
            "in_range": False,
            "est": state.params.est,
        }

    def on_spectrum(power, length: int) -> None:
        state.spectrum = [float(v) for v in power[:length]]

    state.processor.events.connect(Event.FREQUENCY, on_frequency)
    state.processor.events.connect(Event.TOO_NOISY, on_too_noisy)
    state.processor.events.connect(Event.SPECTRUM, on_spectrum)

    loop_task: Optional[asyncio.Task] = None
    lock = asyncio.Lock()
    ws_clients: set[WebSocket] = set()

    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - integration
        nonlocal loop_task
        loop_task = asyncio.create_task(process_loop())

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - integration
        nonlocal loop_task
        if loop_task:
            loop_task.cancel()
            try:
                await loop_task
            except asyncio.CancelledError:
                pass
            loop_task = None

    async def process_loop() -> None:  # pragma: no cover - integration
        while True:
            try:
                await asyncio.sleep(state.params.interval_sec)
                async with lock:
                    compute_once()
                if ws_clients:
                    msg = json.dumps(state.metrics)
                    dead: list[WebSocket] = []
                    for w in ws_clients:
                        try:
                            await w.send_text(msg)
                        except (WebSocketDisconnect, RuntimeError):
                            dead.append(w)
                    for w in dead:
                        ws_clients.discard(w)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("estimation loop failed")
                await asyncio.sleep(0.5)

    def compute_once() -> dict:
        if state.params.est == "zerocross":
            bpm = state.processor.count_frequency()
            if bpm <= 0.0:
                state.metrics = {"status": "no_crossings", "bpm": None, "est": "zerocross"}
        else:
            state.processor.compute_frequency()
        return dict(state.metrics)

    @app.get("/health")
    async def health() -> dict[str, str]:  # pragma: no cover - trivial
        return {"status": "ok"}

    @app.get("/metrics")
    async def get_metrics() -> dict:
        async with lock:
            return dict(state.metrics)

    @app.get("/spectrum")
    async def get_spectrum() -> dict:
        async with lock:
            return {"length": len(state.spectrum), "power": list(state.spectrum)}

    @app.post("/analyze")
    async def post_analyze() -> dict:
        async with lock:
            return compute_once()

    @app.post("/control")
    async def post_control(cfg: ControlModel) -> dict:
        async with lock:
            p = state.params
            proc = state.processor
            data = cfg.model_dump(exclude_none=True)
            for k, v in data.items():
                if k == "pca":
                    proc.set_pca(v)
                elif k == "channel":
                    proc.switch_to_channel(v)
                elif k == "zero_crossing_target":
                    proc.set_zero_crossing_target(v)
                else:
                    setattr(p, k, v)
            return {
                "status": "ok",
                "params": p.__dict__,
                "pca": proc.pca_enabled,
                "channel": proc.channel.value,
                "zero_crossing_target": proc.zero_crossing_target,
            }

    @app.post("/ingest")
    async def post_ingest(payload: IngestModel) -> dict:
        if not payload.frames:
            return {"status": "empty"}
        async with lock:
            proc = state.processor
            write = proc.write_rgb if state.params.mode == "dual" else proc.write_one_color
            for r, g, b, area, dt in payload.frames:
                write(r, g, b, area, dt)
            cursor = proc.cursor
        return {"status": "ok", "count": len(payload.frames), "cursor": cursor}

    @app.post("/thresholds")
    async def post_thresholds(req: ThresholdModel) -> dict:
        async with lock:
            root = Path(state.params.threshold_dir).resolve()
            path = (root / req.name).resolve()
            if path.parent != root:
                raise HTTPException(status_code=400, detail="threshold file outside directory")
            status = state.processor.load_thresholds(path, req.sex, req.age, req.alpha)
            low, high = state.processor.bounds
        return {"status": status.name, "low": low, "high": high}

    @app.websocket("/ws")
    async def ws_metrics(ws: WebSocket) -> None:  # pragma: no cover - integration
        await ws.accept()
        ws_clients.add(ws)
        try:
            while True:
                # keep alive; updates are pushed from loop
                await asyncio.sleep(30)
        except WebSocketDisconnect:
            ws_clients.discard(ws)

    return app


app = make_app()


def main() -> None:  # pragma: no cover - manual run helper
    import uvicorn

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=[
            logging.FileHandler(logs_dir / "service.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    uvicorn.run(app, host="127.0.0.1", port=8000)


if __name__ == "__main__":  # pragma: no cover
    main()
