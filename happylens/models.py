# happylens/models.py
import enum
from dataclasses import dataclass
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field


class MalformedInputError(TypeError):
    """Structurally invalid call (wrong types, missing fields, bad frame size)."""


class Region(str, enum.Enum):
    LIPS = "lips"
    EYE = "eye"
    NOSE = "nose"
    OTHER = "other"
    UNKNOWN = "unknown"


def region_from_name(name: Optional[str]) -> Region:
    """Map a free-text landmark label (e.g. "lipsUpperOuter3") to a Region tag."""
    if not name:
        return Region.UNKNOWN
    lowered = name.lower()
    if "lips" in lowered:
        return Region.LIPS
    if "eye" in lowered:  # covers "eyebrow" too
        return Region.EYE
    if "nose" in lowered:
        return Region.NOSE
    return Region.OTHER


@dataclass(frozen=True)
class LandmarkPoint:
    x: float
    y: float
    name: Optional[str] = None
    region: Optional[Region] = None

    def __post_init__(self):
        if self.region is None:
            object.__setattr__(self, "region", region_from_name(self.name))
        elif not isinstance(self.region, Region):
            try:
                region = Region(self.region)
            except ValueError as e:
                raise MalformedInputError(f"Unknown landmark region: {self.region!r}") from e
            object.__setattr__(self, "region", region)


LandmarkSet = Tuple[LandmarkPoint, ...]


@dataclass(frozen=True)
class BoundingBox:
    x_min: float
    y_min: float
    width: float
    height: float


@dataclass(frozen=True)
class Face:
    landmarks: LandmarkSet
    box: Optional[BoundingBox] = None


@dataclass(frozen=True)
class RegionPoints:
    left_corner: LandmarkPoint
    right_corner: LandmarkPoint
    top_center: LandmarkPoint
    bottom_center: LandmarkPoint


@dataclass(frozen=True)
class ClassifiedLandmarks:
    mouth: LandmarkSet = ()
    eyes: LandmarkSet = ()


class ScoreStatus(str, enum.Enum):
    OK = "ok"
    INSUFFICIENT_LANDMARKS = "insufficient_landmarks"
    NON_FINITE = "non_finite"


@dataclass
class ScoreResult:
    score: int
    status: ScoreStatus = ScoreStatus.OK
    mouth_curvature: Optional[float] = None
    eye_narrowing: Optional[float] = None
    mouth_width: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status is ScoreStatus.OK


@dataclass
class AnalysisResult:
    timestamp_utc: str
    source: str
    image_filename: str
    width: int
    height: int
    faces_detected: int
    score: int
    status: str
    mouth_curvature: Optional[float]
    eye_narrowing: Optional[float]
    mouth_width: Optional[float]
    label: str
    emoji: str


# ---------- API schemas ----------
class LandmarkIn(BaseModel):
    x: float
    y: float
    name: Optional[str] = None
    region: Optional[Region] = None

    def to_point(self) -> LandmarkPoint:
        return LandmarkPoint(x=self.x, y=self.y, name=self.name, region=self.region)


class ScoreRequest(BaseModel):
    landmarks: List[LandmarkIn] = Field(default_factory=list)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class ScoreResponse(BaseModel):
    score: int
    status: ScoreStatus
    mouth_curvature: Optional[float] = None
    eye_narrowing: Optional[float] = None
    mouth_width: Optional[float] = None
    label: str
    emoji: str


class AnalyzeResponse(BaseModel):
    timestamp_utc: str
    source: str
    image_filename: str
    width: int
    height: int
    faces_detected: int
    score: int
    status: str
    mouth_curvature: Optional[float]
    eye_narrowing: Optional[float]
    mouth_width: Optional[float]
    label: str
    emoji: str
