from happylens.config import ScoringConfig, StreamConfig, load_config
from happylens.core import (
    HappinessAnalyzer,
    calculate_happiness_score,
    combine_signals,
    first_face,
    label_for,
    meter_color,
    score_landmarks,
)
from happylens.models import (
    BoundingBox,
    Face,
    LandmarkPoint,
    MalformedInputError,
    Region,
    ScoreResult,
    ScoreStatus,
    region_from_name,
)
from happylens.render import LandmarkRenderer

__version__ = "0.1.0"
