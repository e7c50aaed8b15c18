"""
Face detection for uploads.

OpenCV Haar cascade over a grayscale image. The detector is treated as a
black box: any number of boxes, in any order, possibly overlapping. When the
cascade cannot be loaded or detection fails, callers get zero faces.
"""

import logging
import os
import threading

from utils.bounds import BoundingBox
from utils.image_loading import to_grayscale_array

# Lazy imports for heavy modules
_cv2 = None


def _ensure_cv2():
    """Lazy load cv2."""
    global _cv2
    if _cv2 is None:
        import cv2
        _cv2 = cv2
    return _cv2


class FaceDetector:
    """Haar cascade face detector returning BoundingBox rectangles."""

    def __init__(self, min_face_size=20, scale_factor=1.1, min_neighbors=5,
                 cascade_name='haarcascade_frontalface_default.xml'):
        self.min_face_size = min_face_size
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.available = False
        # CascadeClassifier is not safe to share between threads
        self._lock = threading.Lock()
        try:
            cv2 = _ensure_cv2()
            cascade_path = os.path.join(cv2.data.haarcascades, cascade_name)
            self._cascade = cv2.CascadeClassifier(cascade_path)
            self.available = not self._cascade.empty()
            if not self.available:
                logging.warning(f"Face cascade could not be loaded from {cascade_path}")
        except Exception as e:
            self._cascade = None
            logging.warning(f"Face detector not available: {e}")

    def detect(self, gray):
        """
        Detect faces in a grayscale uint8 array.

        Returns:
            list: BoundingBox per detected face (may be empty)

        Raises:
            RuntimeError: if the detector is not available
        """
        if not self.available:
            raise RuntimeError("Face detector not available")
        cv2 = _ensure_cv2()
        with self._lock:
            rects = self._cascade.detectMultiScale(
                gray,
                scaleFactor=self.scale_factor,
                minNeighbors=self.min_neighbors,
                minSize=(self.min_face_size, self.min_face_size),
                flags=cv2.CASCADE_SCALE_IMAGE,
            )
        return [BoundingBox(x=int(x), y=int(y), width=int(w), height=int(h))
                for (x, y, w, h) in rects]


_detector = None
_detector_lock = threading.Lock()


def get_detector(settings=None):
    """Return the process-wide detector, creating it on first use."""
    global _detector
    with _detector_lock:
        if _detector is None:
            settings = settings or {}
            _detector = FaceDetector(
                min_face_size=settings.get('min_face_size', 20),
                scale_factor=settings.get('scale_factor', 1.1),
                min_neighbors=settings.get('min_neighbors', 5),
            )
    return _detector


def detect_faces(pil_img, detector=None, settings=None):
    """
    Detect faces in a PIL image, degrading to no faces on any failure.

    Args:
        pil_img: PIL Image
        detector: Object with detect(gray) -> list[BoundingBox]; defaults to get_detector()
        settings: Detector settings used when creating the default detector

    Returns:
        list: BoundingBox per face
    """
    try:
        detector = detector or get_detector(settings)
        gray = to_grayscale_array(pil_img)
        faces = detector.detect(gray)
    except Exception as e:
        logging.warning(f"Face detection failed, continuing with no faces: {e}")
        return []
    logging.info(f"Found {len(faces)} faces")
    return list(faces)
