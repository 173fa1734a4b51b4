"""
Face Detection Module

The classifier only needs an object with an async ``detect_faces``
method. ``HaarCascadeFaceDetector`` provides one backed by OpenCV's
bundled frontal-face cascade; OpenCV is an optional dependency
(``pip install photoburn[faces]``).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple, runtime_checkable

import numpy as np

from ..core.errors import FaceDetectorUnavailable
from ..core.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceDetection:
    """A detected face: (x, y, width, height) box in source pixels and a score."""
    box: Tuple[int, int, int, int]
    score: float = 1.0


@runtime_checkable
class FaceDetector(Protocol):
    """Capability interface for optional face detection."""

    async def detect_faces(self, image: PixelBuffer) -> List[FaceDetection]:
        """
        Detect faces in ``image``.

        Raises:
            FaceDetectorUnavailable: if the detector cannot run
        """
        ...


class HaarCascadeFaceDetector:
    """
    Face detector using OpenCV's Haar cascade.

    Large images are downscaled before detection and boxes are scaled
    back to source coordinates. Detection runs in the default executor
    so the event loop is not blocked.
    """

    MAX_DIMENSION = 1024
    CASCADE_FILE = "haarcascade_frontalface_default.xml"

    def __init__(self, scale_factor: float = 1.1, min_neighbors: int = 5):
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self._cascade = None

    def _load(self):
        if self._cascade is not None:
            return self._cascade
        try:
            import cv2
        except ImportError as e:
            raise FaceDetectorUnavailable(f"OpenCV is not installed: {e}") from e

        cv2_data = getattr(cv2, "data", None)
        if cv2_data is None or not hasattr(cv2_data, "haarcascades"):
            raise FaceDetectorUnavailable("OpenCV build has no bundled Haar cascades")

        cascade = cv2.CascadeClassifier(f"{cv2_data.haarcascades}{self.CASCADE_FILE}")
        if cascade.empty():
            raise FaceDetectorUnavailable(f"Failed to load {self.CASCADE_FILE}")
        self._cascade = cascade
        return cascade

    def _detect(self, image: PixelBuffer) -> List[FaceDetection]:
        import cv2

        cascade = self._load()
        gray = cv2.cvtColor(np.ascontiguousarray(image.pixels), cv2.COLOR_RGBA2GRAY)

        longest = max(image.width, image.height)
        scale = longest / self.MAX_DIMENSION if longest > self.MAX_DIMENSION else 1.0
        if scale > 1.0:
            size = (max(1, int(image.width / scale)), max(1, int(image.height / scale)))
            gray = cv2.resize(gray, size, interpolation=cv2.INTER_AREA)

        min_size = max(24, int(min(gray.shape[:2]) * 0.04))
        detections = cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=(min_size, min_size),
        )

        faces = []
        for x, y, w, h in detections:
            if w <= 0 or h <= 0:
                continue
            faces.append(FaceDetection(
                box=(int(x * scale), int(y * scale), int(w * scale), int(h * scale))
            ))
        logger.debug(f"Haar cascade found {len(faces)} face(s)")
        return faces

    async def detect_faces(self, image: PixelBuffer) -> List[FaceDetection]:
        self._load()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._detect, image)


def default_face_detector() -> Optional[HaarCascadeFaceDetector]:
    """Return a Haar detector if OpenCV can load one, else None."""
    detector = HaarCascadeFaceDetector()
    try:
        detector._load()
    except FaceDetectorUnavailable as e:
        logger.info(f"Face detection disabled: {e}")
        return None
    return detector
