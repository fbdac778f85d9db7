# happylens/detector.py
"""MediaPipe FaceMesh adapter: frames in, region-tagged Faces out."""
import logging
from typing import Dict, List

import numpy as np

from happylens.models import BoundingBox, Face, LandmarkPoint, region_from_name

logger = logging.getLogger(__name__)

# group name -> FaceMesh connection set; earlier groups win on shared indices
_GROUPS = (
    ("lips", "FACEMESH_LIPS"),
    ("leftEye", "FACEMESH_LEFT_EYE"),
    ("rightEye", "FACEMESH_RIGHT_EYE"),
    ("leftEyebrow", "FACEMESH_LEFT_EYEBROW"),
    ("rightEyebrow", "FACEMESH_RIGHT_EYEBROW"),
    ("leftIris", "FACEMESH_LEFT_IRIS"),
    ("rightIris", "FACEMESH_RIGHT_IRIS"),
    ("nose", "FACEMESH_NOSE"),
    ("faceOval", "FACEMESH_FACE_OVAL"),
)


class DetectorClosedError(RuntimeError):
    pass


def build_index_names(connections) -> Dict[int, str]:
    """
    Map FaceMesh landmark index -> group name (e.g. 61 -> "lips").
    ``connections`` is the ``face_mesh_connections`` module or any object
    exposing the FACEMESH_* edge sets.
    """
    names: Dict[int, str] = {}
    for group, attr in _GROUPS:
        edges = getattr(connections, attr, None)
        if edges is None:
            logger.debug("FaceMesh connection set %s not available", attr)
            continue
        for a, b in edges:
            names.setdefault(a, group)
            names.setdefault(b, group)
    return names


def to_face(landmarks, width: int, height: int, index_names: Dict[int, str]) -> Face:
    """Convert normalized FaceMesh landmarks into a pixel-space, region-tagged Face."""
    points = []
    for idx, lm in enumerate(landmarks):
        group = index_names.get(idx)
        name = f"{group}{idx}" if group else None
        points.append(LandmarkPoint(x=lm.x * width, y=lm.y * height, name=name,
                                    region=region_from_name(group)))
    if not points:
        return Face(landmarks=())
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    box = BoundingBox(x_min=min(xs), y_min=min(ys),
                      width=max(xs) - min(xs), height=max(ys) - min(ys))
    return Face(landmarks=tuple(points), box=box)


class FaceMeshDetector:
    """
    Caller-owned landmark detector handle with explicit lifecycle.

    Example:
        >>> with FaceMeshDetector(static_image_mode=True) as det:
        ...     faces = det.detect(image_rgb)
    """

    def __init__(self, static_image_mode: bool = False, max_num_faces: int = 1,
                 refine_landmarks: bool = True, min_detection_confidence: float = 0.5,
                 min_tracking_confidence: float = 0.5):
        self.static_image_mode = static_image_mode
        self.max_num_faces = max_num_faces
        self.refine_landmarks = refine_landmarks
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self._mesh = None
        self._index_names: Dict[int, str] = {}

    @property
    def is_open(self) -> bool:
        return self._mesh is not None

    def open(self) -> "FaceMeshDetector":
        if self._mesh is not None:
            return self
        try:
            import mediapipe as mp
        except ImportError:
            raise ImportError(
                "mediapipe is required for FaceMeshDetector. "
                "Install with: pip install mediapipe"
            )
        self._mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=self.static_image_mode,
            max_num_faces=self.max_num_faces,
            refine_landmarks=self.refine_landmarks,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
        )
        self._index_names = build_index_names(mp.solutions.face_mesh_connections)
        logger.info("FaceMesh detector opened (max_num_faces=%d, static=%s)",
                    self.max_num_faces, self.static_image_mode)
        return self

    def close(self) -> None:
        if self._mesh is None:
            return
        self._mesh.close()
        self._mesh = None
        logger.info("FaceMesh detector closed")

    def __enter__(self) -> "FaceMeshDetector":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def detect(self, image_rgb: np.ndarray) -> List[Face]:
        """Faces in preference order (largest box first). Empty list when none found."""
        if self._mesh is None:
            raise DetectorClosedError("FaceMeshDetector is not open; call open() first.")
        if not isinstance(image_rgb, np.ndarray) or image_rgb.ndim != 3 or image_rgb.shape[2] != 3:
            raise ValueError("detect() expects an RGB image array of shape (H, W, 3)")

        h, w = image_rgb.shape[:2]
        res = self._mesh.process(image_rgb)
        if not res.multi_face_landmarks:
            return []
        faces = [to_face(f.landmark, w, h, self._index_names) for f in res.multi_face_landmarks]
        return sorted(faces, key=_box_area, reverse=True)


def _box_area(face: Face) -> float:
    return face.box.width * face.box.height if face.box else 0.0
