import base64
import logging
from typing import Optional

import requests
from pydantic import ValidationError as SchemaError

from snapsight.errors import TransportError
from snapsight.schemas.analysis import AnalysisResult
from snapsight.services.request_encoder import CaptureRequest

logger = logging.getLogger(__name__)


class AnalysisClient:
    """HTTP client for the SnapSight gateway.

    One ``analyze()`` call is one round trip. A reachable backend that answers
    success=false yields a normal AnalysisResult; only failures to obtain an
    answer (connection errors, timeouts, non-200 replies, unreadable bodies)
    raise TransportError. Retries are the scheduler's business, never done here.
    """

    def __init__(self, url: str = "http://localhost:3000", timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.url = url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def probe(self) -> Optional[dict]:
        """GET the gateway /health endpoint; returns its payload or None."""
        try:
            r = self.session.get(f"{self.url}/health", timeout=self.timeout)
            if r.status_code == 200:
                data = r.json()
                logger.info(f"[AnalysisClient] Gateway reachable: {data}")
                return data
        except (requests.RequestException, ValueError):
            logger.debug("[AnalysisClient] health check failed")
        return None

    def analyze(self, capture: CaptureRequest) -> AnalysisResult:
        image_b64 = base64.b64encode(capture.image_bytes).decode('ascii')
        body = {
            'image_data': image_b64,
            'image_format': capture.format.value,
        }
        logger.debug(
            f"[AnalysisClient] Sending {capture.width}x{capture.height} frame "
            f"(size={len(image_b64)}, format={capture.format.value})"
        )

        try:
            r = self.session.post(f"{self.url}/api/process-image", json=body, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise TransportError(f"Gateway request timed out after {self.timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise TransportError(f"Could not connect to gateway at {self.url}") from e
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        if r.status_code != 200:
            raise TransportError(f"Gateway returned {r.status_code}: {self._error_detail(r)}",
                                 status_code=r.status_code)

        try:
            return AnalysisResult.model_validate(r.json())
        except (ValueError, SchemaError) as e:
            raise TransportError(f"Malformed gateway response: {e}", status_code=r.status_code) from e

    def close(self):
        self.session.close()

    @staticmethod
    def _error_detail(response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text
        if isinstance(data, dict) and data.get('message'):
            return data['message']
        return response.text
