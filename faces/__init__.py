"""
Album faces package.

Face detection used when photos are uploaded.
"""

from faces.detector import FaceDetector, get_detector, detect_faces
