"""
Influence screening of observations before splitting.
"""
from lassotune.screening.influence import (
    DEFAULT_INFLUENCE_MULTIPLIER,
    InfluenceScreener,
    ScreeningResult,
    compute_influence,
    influence_threshold,
    ols_design,
)

__all__ = [
    "DEFAULT_INFLUENCE_MULTIPLIER",
    "InfluenceScreener",
    "ScreeningResult",
    "compute_influence",
    "influence_threshold",
    "ols_design",
]
