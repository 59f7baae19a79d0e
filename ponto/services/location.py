from __future__ import annotations

import math

MAX_GPS_ACCURACY_METERS = 100.0


def _is_real(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def is_valid_location(
    latitude: float | None,
    longitude: float | None,
    accuracy: float | None = None,
    max_accuracy: float = MAX_GPS_ACCURACY_METERS,
) -> bool:
    # Missing coordinates mean no GPS fix was obtained.
    if latitude is None or longitude is None:
        return False
    if not _is_real(latitude) or not _is_real(longitude):
        return False
    if latitude < -90 or latitude > 90:
        return False
    if longitude < -180 or longitude > 180:
        return False
    if accuracy is not None and (not _is_real(accuracy) or accuracy > max_accuracy):
        return False
    return True
