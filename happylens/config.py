# happylens/config.py
import os
import math
import logging
from dataclasses import dataclass, asdict, fields
from typing import Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


@dataclass
class ScoringConfig:
    """
    Tunable constants of the landmark -> score pipeline:
      - mouth / eye / width weights of the raw score
      - logistic steepness applied around raw=0.5
      - minimum classified points per region
      - curvature clamp and eye aspect-ratio band
    """
    mouth_weight: float = 0.7
    eye_weight: float = 0.2
    width_weight: float = 0.1
    logistic_steepness: float = 6.0
    min_region_points: int = 10
    curvature_limit: float = 0.5
    eye_ratio_narrow: float = 0.2
    eye_ratio_wide: float = 0.5
    min_distance: float = 1e-3

    def validate(self) -> "ScoringConfig":
        # YAML may hand over strings like "0.7"
        for f in fields(self):
            value = getattr(self, f.name)
            cast = int if f.name == "min_region_points" else float
            if isinstance(value, bool):
                raise ValueError(f"{f.name} must be a number, got {value!r}")
            try:
                value = cast(value)
            except (TypeError, ValueError, OverflowError) as e:
                raise ValueError(f"{f.name} must be a number, got {value!r}") from e
            if cast is float and not math.isfinite(value):
                raise ValueError(f"{f.name} must be finite, got {value}")
            setattr(self, f.name, value)

        weights = (self.mouth_weight, self.eye_weight, self.width_weight)
        if any(w < 0 for w in weights):
            raise ValueError(f"Weights must be non-negative, got {weights}")
        if sum(weights) <= 0:
            raise ValueError("At least one weight must be positive")
        if self.eye_ratio_wide <= self.eye_ratio_narrow:
            raise ValueError("eye_ratio_wide must be greater than eye_ratio_narrow")
        if self.curvature_limit <= 0:
            raise ValueError("curvature_limit must be positive")
        if self.min_region_points < 1:
            raise ValueError("min_region_points must be >= 1")
        if self.logistic_steepness <= 0:
            raise ValueError("logistic_steepness must be positive")
        if self.min_distance <= 0:
            raise ValueError("min_distance must be positive")
        return self

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StreamConfig:
    camera: Union[int, str] = 0
    window_size: Tuple[int, int] = (640, 480)
    mirror: bool = True
    show_landmarks: bool = False
    min_interval_s: float = 0.066  # ~15 fps
    max_num_faces: int = 1


def _pick(cls, section: Optional[dict]) -> dict:
    if not section:
        return {}
    known = {f.name for f in fields(cls)}
    unknown = set(section) - known
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", cls.__name__, sorted(unknown))
    return {k: v for k, v in section.items() if k in known}


def load_config(path: Optional[str] = None) -> Tuple[ScoringConfig, StreamConfig]:
    """Load ``scoring:`` and ``stream:`` sections from YAML (defaults if the file is absent)."""
    path = path or os.getenv("HAPPYLENS_CONFIG", DEFAULT_CONFIG_PATH)
    data = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", path)
    else:
        logger.debug("No config file at %s, using defaults", path)

    scoring = ScoringConfig(**_pick(ScoringConfig, data.get("scoring"))).validate()
    stream_kwargs = _pick(StreamConfig, data.get("stream"))
    if "window_size" in stream_kwargs:
        stream_kwargs["window_size"] = tuple(stream_kwargs["window_size"])
    camera_url = os.getenv("CAMERA_URL")
    if camera_url:
        stream_kwargs["camera"] = int(camera_url) if camera_url.isdigit() else camera_url
    return scoring, StreamConfig(**stream_kwargs)
