"""
Configuration constants for the movie insights engine.

This module centralizes all magic numbers and configurable parameters.
Values can be overridden via environment variables.
"""
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_float_env(key: str, default: float, min_val: float = 0) -> float:
    """
    Safely parse float from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated float value
    """
    try:
        val = float(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    """
    Safely parse integer from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated integer value
    """
    try:
        val = int(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


# Dataset Configuration
DATA_DIR = Path(os.environ.get("MOVIE_INSIGHTS_DATA", "data"))
MOVIES_FILE = "movies.csv"
RATINGS_FILE = "ratings.csv"
TAGS_FILE = "tags.csv"
LINKS_FILE = "links.csv"
GENRE_DELIMITER = "|"

# Result caps
DEFAULT_RECOMMEND_LIMIT = _get_int_env("MOVIE_INSIGHTS_RECOMMEND_LIMIT", 20)
DEFAULT_MOOD_LIMIT = _get_int_env("MOVIE_INSIGHTS_MOOD_LIMIT", 50)
DEFAULT_TAG_CLOUD_LIMIT = _get_int_env("MOVIE_INSIGHTS_TAG_CLOUD_LIMIT", 100)
DEFAULT_SEARCH_LIMIT = _get_int_env("MOVIE_INSIGHTS_SEARCH_LIMIT", 100)

# Rating statistics
RATING_SCALE_MAX = 5.0
RECENT_RATINGS_LIMIT = 10
TIMELINE_WINDOW = 3  # Centered window, clipped at the series boundaries

# Collaborative filter
ENTHUSIAST_MIN_RATING = 4.0  # Cohort members rated a reference item at least this
COLLAB_FULL_CONFIDENCE_RATINGS = 10  # Cohort ratings needed for full confidence

# Hybrid recommendation weights (must sum to 1.0)
RECOMMEND_WEIGHTS = {
    'genre': 0.4,
    'collaborative': 0.4,
    'tag': 0.2,
}
MIN_COMPOSITE_SCORE = 0.1  # Candidates at or below this are discarded

# Reason thresholds, shared by recommendation, mood and cross analysis
REASON_THRESHOLD_GENRE = 0.5
REASON_THRESHOLD_COLLAB = 0.6
REASON_THRESHOLD_TAG = 0.3
REASON_THRESHOLD_USER_OVERLAP = 0.3
HIGHLY_RATED_THRESHOLD = 4.0
POPULAR_RATING_COUNT = 100

# Mood classification (points out of 100)
MOOD_SCORE_WEIGHTS = {
    'genre': 40,
    'tag': 40,
    'rating_fit': 20,
}
MIN_MOOD_SCORE = 30
VARIANCE_LOW_MAX = 0.5
VARIANCE_MEDIUM_MAX = 1.0

# Cross recommendation: same 40/40/20 split as the hybrid scorer, with the
# shared-enthusiast overlap standing in for the collaborative signal
CROSS_WEIGHTS = {
    'genre': 0.4,
    'user_overlap': 0.4,
    'tag': 0.2,
}
CROSS_STRONG_THRESHOLD = 70
CROSS_MODERATE_THRESHOLD = 40

# Tag cloud defaults
TAG_CLOUD_YEAR_RANGE = (1990, 2020)
TAG_CLOUD_RATING_RANGE = (0.0, 5.0)
TAG_CLOUD_MIN_ITEMS = 2  # A tag must appear on at least this many filtered items

# Poster lookup (TMDB). Without a key, lookups resolve to no poster.
TMDB_API_KEY = os.environ.get("TMDB_API_KEY") or None
TMDB_API_BASE = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p"
TMDB_POSTER_SIZE = "w500"
HTTP_TIMEOUT = _get_float_env("MOVIE_INSIGHTS_HTTP_TIMEOUT", 10.0, min_val=0.1)
MAX_HTTP_RETRIES = _get_int_env("MOVIE_INSIGHTS_HTTP_RETRIES", 2, min_val=1)
HTTP_RETRY_DELAY = 0.5
