"""Default configuration values for the catalog engine."""

from __future__ import annotations

from typing import Final

# Page size used by the gallery when the settings file does not override it.
DEFAULT_PAGE_SIZE: Final[int] = 20

# Upper bounds of the filter sliders.  A range that still touches one of these
# bounds is treated as "unbounded" and is not sent to the server, so assets
# without pixel dimensions (3D models) are not filtered out by accident.
MAX_RATING: Final[int] = 5
MAX_DIMENSION: Final[int] = 8192
DIMENSION_FILTER_CEILING: Final[int] = 8160
MAX_FILE_SIZE_MB: Final[int] = 4096
BYTES_IN_MB: Final[int] = 1024 * 1024

ALLOWED_FILE_TYPES: Final[tuple[str, ...]] = ("model", "image", "texture", "other")

# Only these types can be converted into one another; the rest follow from the
# file extension.
CONVERTIBLE_FILE_TYPES: Final[frozenset[str]] = frozenset({"image", "texture"})

ILLEGAL_FILENAME_CHARS: Final[str] = '/\\:*?"<>|'
MAX_DESCRIPTION_LENGTH: Final[int] = 500

DEFAULT_API_BASE_URL: Final[str] = "http://127.0.0.1:5173"
API_PREFIX: Final[str] = "/api"
DEFAULT_REQUEST_TIMEOUT_SEC: Final[float] = 10.0

# Names of derived aggregates that are not simulated locally and must be
# refetched after a committed mutation.
AGGREGATE_STATS: Final[str] = "sidebar-stats"
AGGREGATE_TAGS: Final[str] = "tags"
AGGREGATE_COLLECTIONS: Final[str] = "material-sets"
AGGREGATE_COLORS: Final[str] = "colors"
