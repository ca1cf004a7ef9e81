"""Upload/result state machine behind the analysis page."""

import base64
import enum
import io
import logging
import os
import threading

from PIL import Image, UnidentifiedImageError

from inference_client import InferenceError, PredictionResult

ERROR_MESSAGE = "Error while predicting"

logger = logging.getLogger(__name__)


class AnalysisState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


class FailurePolicy(str, enum.Enum):
    KEEP_STALE = "keep"
    CLEAR = "clear"


FAILURE_POLICY = FailurePolicy(os.getenv("OVAQUICK_FAILURE_POLICY", "keep").lower())

FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "JPG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
    "GIF": "image/gif",
    "TIFF": "image/tiff",
}


def format_percent(probability) -> str:
    if isinstance(probability, bool) or not isinstance(probability, (int, float)):
        return "-"
    return f"{probability * 100:.2f}%"


def _sniff_mime(data: bytes):
    try:
        with Image.open(io.BytesIO(data)) as img:
            return FORMAT_TO_MIME.get((img.format or "").upper())
    except (UnidentifiedImageError, OSError):
        return None


def preview_data_url(data: bytes, content_type: str | None = None) -> str:
    if content_type and content_type.startswith("image/"):
        mime_type = content_type
    else:
        mime_type = _sniff_mime(data) or "application/octet-stream"
    image_b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{image_b64}"


class AnalysisController:
    """Tracks one user's staged file, in-flight request and last result.

    Every submission is tagged with an increasing request id. Settlements
    carrying anything other than the latest id are dropped, so a reset or a
    newer submission wins over a slow older one.
    """

    def __init__(self, failure_policy: FailurePolicy = FAILURE_POLICY):
        self.failure_policy = FailurePolicy(failure_policy)
        self.state = AnalysisState.IDLE
        self.file = None
        self.filename = None
        self.preview = None
        self.result: PredictionResult | None = None
        self.error = None
        self._request_id = 0
        self._pending = None
        self._lock = threading.Lock()

    @property
    def submit_enabled(self) -> bool:
        return self.file is not None and self.state != AnalysisState.LOADING

    def select_file(self, data: bytes, filename: str | None = None,
                    content_type: str | None = None):
        with self._lock:
            if not data:
                self.file = None
                self.filename = None
                self.preview = None
                return
            self.file = data
            self.filename = filename
            self.preview = preview_data_url(data, content_type)

    def begin(self):
        """Enter LOADING and return the new request id, or None if not allowed."""
        with self._lock:
            if self.file is None or self.state == AnalysisState.LOADING:
                return None
            self._request_id += 1
            self._pending = self._request_id
            self.state = AnalysisState.LOADING
            return self._request_id

    def resolve(self, request_id: int, result: PredictionResult) -> bool:
        with self._lock:
            if request_id != self._pending:
                logger.info("Discarding result of superseded request %s", request_id)
                return False
            self._pending = None
            self.state = AnalysisState.SUCCESS
            self.result = result
            self.error = None
            return True

    def reject(self, request_id: int, error: BaseException) -> bool:
        with self._lock:
            if request_id != self._pending:
                logger.info("Discarding failure of superseded request %s", request_id)
                return False
            self._pending = None
            self.state = AnalysisState.FAILURE
            self.error = ERROR_MESSAGE
            if self.failure_policy == FailurePolicy.CLEAR:
                self.result = None
            return True

    def submit(self, adapter):
        request_id = self.begin()
        if request_id is None:
            return self.state

        data, filename = self.file, self.filename
        try:
            result = adapter.predict(data, filename=filename)
        except InferenceError as e:
            logger.error("Prediction request %s failed: %s", request_id, e)
            self.reject(request_id, e)
        except Exception as e:
            self.reject(request_id, e)
            raise
        else:
            self.resolve(request_id, result)
        return self.state

    def reset(self):
        with self._lock:
            self._pending = None
            self.state = AnalysisState.IDLE
            self.file = None
            self.filename = None
            self.preview = None
            self.result = None
            self.error = None

    def render(self):
        predictions = []
        heatmap_url = ""
        shape = None
        if self.result is not None:
            predictions = [
                {
                    "label": label,
                    "probability": probability,
                    "percent": format_percent(probability),
                }
                for label, probability in self.result.probabilities.items()
            ]
            heatmap_url = self.result.heatmap_url
            shape = self.result.shape

        return {
            "state": self.state.value,
            "filename": self.filename,
            "preview": self.preview,
            "predictions": predictions,
            "heatmap_url": heatmap_url,
            "shape": shape,
            "error": self.error,
            "submit_enabled": self.submit_enabled,
        }
