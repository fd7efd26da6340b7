"""Internal constants shared across the library."""

BASE_URL = "https://playmap-api.example.com/v1"
USER_AGENT = "playmap/0.1"

FACILITIES_COLLECTION = "playgrounds"
SUB_RECORDS_COLLECTION = "rides"

#: Backend key the sub-record collection is filtered on.
FACILITY_ID_FIELD = "pfctSn"

#: Mean earth radius used for haversine distances, in meters.
EARTH_RADIUS_M = 6_371_000.0

# ------------------------------------------------------------------
# Cluster marker sizing (px)
# ------------------------------------------------------------------

_MARKER_SIZES: tuple[tuple[int, int], ...] = ((10, 40), (100, 50))
_MARKER_SIZE_MAX = 60


def marker_size_for_count(count: int) -> int:
    """Return the square marker edge (px) used to draw a cluster of *count* members.

    Raises :class:`ValueError` for non-positive counts.
    """
    if count < 1:
        raise ValueError(f"cluster count must be positive, got {count}")
    for upper, size in _MARKER_SIZES:
        if count < upper:
            return size
    return _MARKER_SIZE_MAX
