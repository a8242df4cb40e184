"""
Configuration for the SnapSight processes.

Each process (gateway, capture client, reference analyzer) reads its settings from:
1. Environment variables (highest)
2. JSON config file
3. Defaults (lowest)
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


@dataclass
class GatewayConfig:
    """HTTP-to-gRPC gateway settings."""
    host: str = "0.0.0.0"
    port: int = 3000
    backend_address: str = "localhost:50051"
    rpc_timeout_s: float = 10.0


@dataclass
class CaptureConfig:
    """Capture scheduler and analysis client settings."""
    gateway_url: str = "http://localhost:3000"
    capture_interval_ms: int = 2000
    min_capture_gap_ms: int = 500
    encode_quality: int = 90
    image_format: str = "jpeg"
    request_timeout_s: float = 10.0
    camera_index: int = 0
    max_in_flight: int = 4


@dataclass
class ControlConfig:
    """Capture-side control API settings."""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class AnalyzerConfig:
    """Reference analysis backend settings."""
    port: int = 50051
    max_workers: int = 4


@dataclass
class AppConfig:
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    control: ControlConfig = field(default_factory=ControlConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from file and environment.

    Args:
        config_path: Path to JSON config file. When omitted, ``snapsight.json``
            in the working directory is used if present.

    Returns:
        AppConfig: merged configuration
    """
    config = AppConfig()

    path = Path(config_path) if config_path else Path("snapsight.json")
    if config_path or path.exists():
        config = _merge_config(config, _load_json_config(str(path)))

    return _apply_env_overrides(config)


def _load_json_config(path: str) -> Dict[str, Any]:
    """Load configuration from JSON file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning(f"[Config] Config file not found: {path}")
        return {}
    except json.JSONDecodeError as e:
        logger.warning(f"[Config] Invalid JSON in config file: {e}")
        return {}


def _merge_section(section, data: Dict[str, Any]):
    for key, value in data.items():
        if hasattr(section, key):
            setattr(section, key, value)
        else:
            logger.warning(f"[Config] Ignoring unknown key: {key}")


def _merge_config(config: AppConfig, file_data: Dict[str, Any]) -> AppConfig:
    """Merge file configuration into AppConfig."""
    _merge_section(config.gateway, file_data.get('gateway', {}))
    _merge_section(config.capture, file_data.get('capture', {}))
    _merge_section(config.control, file_data.get('control', {}))
    _merge_section(config.analyzer, file_data.get('analyzer', {}))
    return config


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    """Apply environment variable overrides."""
    # Gateway
    config.gateway.host = os.getenv('GATEWAY_HOST', config.gateway.host)
    config.gateway.port = int(os.getenv('PORT', config.gateway.port))
    config.gateway.backend_address = os.getenv('ANALYSIS_BACKEND_ADDR', config.gateway.backend_address)
    config.gateway.rpc_timeout_s = float(os.getenv('RPC_TIMEOUT_S', config.gateway.rpc_timeout_s))

    # Capture
    config.capture.gateway_url = os.getenv('GATEWAY_URL', config.capture.gateway_url)
    config.capture.capture_interval_ms = int(os.getenv('CAPTURE_INTERVAL_MS', config.capture.capture_interval_ms))
    config.capture.min_capture_gap_ms = int(os.getenv('MIN_CAPTURE_GAP_MS', config.capture.min_capture_gap_ms))
    config.capture.encode_quality = int(os.getenv('ENCODE_QUALITY', config.capture.encode_quality))
    config.capture.image_format = os.getenv('IMAGE_FORMAT', config.capture.image_format).lower()
    config.capture.request_timeout_s = float(os.getenv('REQUEST_TIMEOUT_S', config.capture.request_timeout_s))
    config.capture.camera_index = int(os.getenv('CAMERA_INDEX', config.capture.camera_index))
    config.capture.max_in_flight = int(os.getenv('MAX_IN_FLIGHT', config.capture.max_in_flight))

    # Control API
    config.control.host = os.getenv('CONTROL_HOST', config.control.host)
    config.control.port = int(os.getenv('CONTROL_PORT', config.control.port))

    # Reference analyzer
    config.analyzer.port = int(os.getenv('ANALYZER_PORT', config.analyzer.port))

    return config
