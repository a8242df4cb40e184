"""
HTTP-to-gRPC gateway.

Accepts base64 JSON frames from capture clients, forwards them to the
analysis backend's ImageProcessor/ProcessImage RPC and translates the reply
back into JSON.

Endpoints:
- POST /api/process-image - one frame in, analysis result out
- GET  /health            - liveness probe
"""

import base64
import binascii
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import grpc
from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from snapsight.config import GatewayConfig, load_config
from snapsight.errors import ValidationError
from snapsight.rpc.image_service import ImageProcessorStub, ImageRequest, response_to_dict
from snapsight.schemas.analysis import (
    AnalysisResult,
    ErrorResponse,
    HealthResponse,
    ProcessImageRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_FORMAT = "jpeg"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


def _rpc_error_message(error: grpc.RpcError) -> str:
    # Only call-level errors carry code()/details(); a bare RpcError does not
    code = getattr(error, "code", None)
    details = getattr(error, "details", None)
    if callable(code) and callable(details):
        status = code()
        return f"gRPC error: {getattr(status, 'name', status)}: {details()}"
    return f"gRPC error: {error}"


def decode_request(body: Optional[ProcessImageRequest]):
    """Validate the JSON body and build the RPC request. Raises ValidationError."""
    if body is None or not body.image_data:
        raise ValidationError("Missing image_data field")
    try:
        image_bytes = base64.b64decode(body.image_data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid base64 image_data")
    return ImageRequest(
        image_data=image_bytes,
        image_format=body.image_format or DEFAULT_IMAGE_FORMAT,
    )


def create_app(config: Optional[GatewayConfig] = None, stub=None) -> FastAPI:
    """
    Build the gateway application.

    Args:
        config: Gateway settings (backend address, RPC timeout)
        stub: Pre-built ImageProcessor stub; when None a channel to
            ``config.backend_address`` is opened for the app's lifetime
    """
    config = config or GatewayConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        channel = None
        if stub is None:
            channel = grpc.insecure_channel(config.backend_address)
            app.state.stub = ImageProcessorStub(channel)
        else:
            app.state.stub = stub
        logger.info(f"[Gateway] Forwarding to gRPC backend at {config.backend_address}")
        yield
        if channel is not None:
            channel.close()
        logger.info("[Gateway] Shut down")

    app = FastAPI(title="SnapSight Gateway", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    def health():
        """Liveness probe for external health checks."""
        return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())

    @app.post("/api/process-image", response_model=AnalysisResult)
    def process_image(body: Optional[ProcessImageRequest] = Body(default=None)):
        try:
            rpc_request = decode_request(body)
        except ValidationError as e:
            logger.info(f"[Gateway] Rejected request: {e}")
            return _error(400, str(e))

        try:
            response = app.state.stub.ProcessImage(rpc_request, timeout=config.rpc_timeout_s)
        except grpc.RpcError as e:
            message = _rpc_error_message(e)
            logger.error(f"[Gateway] {message}")
            return _error(500, message)
        except Exception as e:
            logger.exception("[Gateway] Server error: %s", e)
            return _error(500, f"Server error: {e}")

        try:
            result = AnalysisResult(**response_to_dict(response))
        except Exception as e:
            logger.exception("[Gateway] Could not translate backend reply: %s", e)
            return _error(500, f"Server error: {e}")

        logger.debug(
            f"[Gateway] Processed {len(rpc_request.image_data)} bytes "
            f"(success={result.success}, boxes={len(result.bounding_boxes)})"
        )
        return result

    return app


app = create_app(load_config().gateway)


if __name__ == '__main__':
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
    gateway_config = load_config().gateway
    uvicorn.run(create_app(gateway_config), host=gateway_config.host, port=gateway_config.port)
