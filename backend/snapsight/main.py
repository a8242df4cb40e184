import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from snapsight.api import session_api
from snapsight.config import CaptureConfig, load_config
from snapsight.scheduler.capture_scheduler import CaptureScheduler
from snapsight.services.analysis_client import AnalysisClient
from snapsight.services.frame_source import OpenCVCameraSource
from snapsight.services.session_state import SessionState

logger = logging.getLogger(__name__)


def build_scheduler(config: CaptureConfig, frame_source=None) -> CaptureScheduler:
    """Wire the capture pipeline: camera -> encoder -> gateway client -> session state."""
    client = AnalysisClient(config.gateway_url, timeout=config.request_timeout_s)
    return CaptureScheduler(
        frame_source=frame_source or OpenCVCameraSource(config.camera_index),
        client=client,
        session=SessionState(),
        capture_interval_ms=config.capture_interval_ms,
        min_capture_gap_ms=config.min_capture_gap_ms,
        encode_quality=config.encode_quality,
        image_format=config.image_format,
        max_in_flight=config.max_in_flight,
    )


def create_app(scheduler: CaptureScheduler, autostart: bool = False) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.scheduler = scheduler
        if scheduler.client.probe() is None:
            logger.warning("[Startup] Gateway not reachable yet; cycles will report transport errors")
        if autostart:
            scheduler.start()
        yield
        logger.info("[Shutdown] Stopping capture scheduler...")
        scheduler.shutdown()
        scheduler.client.close()

    app = FastAPI(title="SnapSight Capture Client", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(session_api.router)

    @app.get("/")
    def read_root():
        return {"message": "SnapSight capture client is running"}

    return app


# Entry point for running the capture client directly
if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="SnapSight capture client")
    parser.add_argument("--config", help="Path to JSON config file")
    parser.add_argument("--no-autostart", action="store_true", help="Wait for /api/session/start")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    app_config = load_config(args.config)
    app = create_app(build_scheduler(app_config.capture), autostart=not args.no_autostart)
    uvicorn.run(app, host=app_config.control.host, port=app_config.control.port)
