import base64
import contextlib
import io
import logging
import os
import tempfile
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from gradio_client import Client, handle_file
from PIL import Image, UnidentifiedImageError

SPACE_ID = os.getenv("OVAQUICK_SPACE_ID", "ashad0167/ovarian-condition-detector")
PREDICT_ROUTE = os.getenv("OVAQUICK_PREDICT_ROUTE", "/predict")
HF_TOKEN = os.getenv("HF_TOKEN") or None

SHAPE_FLAT = "flat"
SHAPE_CONFIDENCES = "confidences"
SHAPE_UNRECOGNIZED = "unrecognized"

logger = logging.getLogger(__name__)


class InferenceError(Exception):
    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class InferenceConnectionError(InferenceError):
    """The remote Space could not be reached or initialized."""


class RemoteCallError(InferenceError):
    """The Space was reached but the prediction call failed."""


class UnexpectedShapeError(InferenceError):
    """Reserved: unrecognized shapes decode to an empty mapping instead."""


@dataclass(frozen=True)
class DecodedPredictions:
    shape: str
    probabilities: Mapping[str, float]


@dataclass(frozen=True)
class PredictionResult:
    probabilities: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    heatmap_url: str = ""
    shape: str = SHAPE_UNRECOGNIZED

    def to_dict(self):
        return {
            "predictions": dict(self.probabilities),
            "heatmap_url": self.heatmap_url,
            "shape": self.shape,
        }


def _is_probability(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_float(value):
    if isinstance(value, bool):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return value


def _decode_flat(raw):
    if not isinstance(raw, Mapping) or "label" in raw:
        return None
    if isinstance(raw.get("confidences"), list):
        return None
    return {str(k): _as_float(v) for k, v in raw.items()}


def _decode_confidences(raw):
    if not isinstance(raw, Mapping):
        return None
    entries = raw.get("confidences")
    if not isinstance(entries, list):
        return None
    preds = {}
    for entry in entries:
        if not isinstance(entry, Mapping) or "label" not in entry:
            return None
        if not _is_probability(entry.get("confidence")):
            return None
        # last duplicate label wins
        preds[str(entry["label"])] = float(entry["confidence"])
    return preds


_DECODERS = (
    (SHAPE_FLAT, _decode_flat),
    (SHAPE_CONFIDENCES, _decode_confidences),
)


def decode_predictions(raw) -> DecodedPredictions:
    """Decode the prediction field into the first shape that accepts it.

    Shapes are tried in priority order: a flat ``{class: probability}``
    mapping, then a Gradio ``Label`` payload carrying a ``confidences`` list.
    Anything else becomes the ``unrecognized`` variant with no probabilities.
    """
    for shape, decoder in _DECODERS:
        preds = decoder(raw)
        if preds is not None:
            return DecodedPredictions(shape, MappingProxyType(preds))
    logger.debug("Unrecognized prediction payload of type %s", type(raw).__name__)
    return DecodedPredictions(SHAPE_UNRECOGNIZED, MappingProxyType({}))


def normalize_predictions(raw) -> dict[str, float]:
    return dict(decode_predictions(raw).probabilities)


def _to_data_url_png(img: Image.Image):
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    image_b64 = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{image_b64}"


def extract_heatmap_url(raw) -> str:
    if isinstance(raw, Mapping):
        url = raw.get("url")
        return url if isinstance(url, str) else ""

    # The Python transport downloads file outputs and hands back a local path.
    if isinstance(raw, str) and os.path.isfile(raw):
        try:
            with Image.open(raw) as img:
                return _to_data_url_png(img)
        except (UnidentifiedImageError, OSError):
            logger.warning("Heatmap output %s is not a readable image", raw)
    return ""


def build_result(response) -> PredictionResult:
    data = list(response) if isinstance(response, (list, tuple)) else [response]
    pred_data = data[0] if len(data) > 0 else None
    gradcam_file = data[1] if len(data) > 1 else None

    decoded = decode_predictions(pred_data)
    return PredictionResult(
        probabilities=decoded.probabilities,
        heatmap_url=extract_heatmap_url(gradcam_file),
        shape=decoded.shape,
    )


class SpaceConnection:
    """Lazily connected handle to the hosted Gradio Space.

    The first ``get()`` connects and later calls reuse that client. The lock
    makes concurrent first calls share a single connection.
    """

    def __init__(self, space_id: str = SPACE_ID, hf_token: str | None = HF_TOKEN,
                 client_factory=Client):
        self.space_id = space_id
        self._hf_token = hf_token
        self._client_factory = client_factory
        self._client = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def get(self):
        if self._client is None:
            with self._lock:
                if self._client is None:
                    logger.info("Connecting to Space %s", self.space_id)
                    try:
                        if self._hf_token:
                            self._client = self._client_factory(
                                self.space_id, hf_token=self._hf_token
                            )
                        else:
                            self._client = self._client_factory(self.space_id)
                    except Exception as e:
                        logger.error("Failed to connect to %s: %s", self.space_id, e)
                        raise InferenceConnectionError(
                            f"Could not connect to {self.space_id}", cause=e
                        ) from e
        return self._client

    def close(self):
        with self._lock:
            if self._client is not None:
                logger.info("Dropping connection to Space %s", self.space_id)
            self._client = None


class InferenceClient:
    def __init__(self, connection: SpaceConnection, route: str = PREDICT_ROUTE):
        self.connection = connection
        self.route = route

    def predict(self, image: bytes, filename: str | None = None) -> PredictionResult:
        """Submit one image to the Space and normalize its response.

        Raises:
            InferenceConnectionError: If the Space cannot be reached.
            RemoteCallError: If the Space rejects the payload or errors out.
        """
        client = self.connection.get()

        suffix = os.path.splitext(filename or "")[1].lower()
        try:
            with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
                tmp.write(image)
                tmp_path = tmp.name
        except OSError as e:
            logger.error("Could not stage upload for %s: %s", self.connection.space_id, e)
            raise RemoteCallError("Could not stage upload", cause=e) from e

        try:
            response = client.predict(image=handle_file(tmp_path), api_name=self.route)
        except Exception as e:
            logger.error("Prediction call to %s%s failed: %s",
                         self.connection.space_id, self.route, e)
            raise RemoteCallError("Remote prediction failed", cause=e) from e
        finally:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)

        result = build_result(response)
        logger.info("Prediction decoded as %s with %d classes",
                    result.shape, len(result.probabilities))
        return result
