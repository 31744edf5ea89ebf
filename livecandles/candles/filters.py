from __future__ import annotations

from typing import Optional

DEFAULT_DEVIATION_THRESHOLD = 0.10


def is_outlier(
    new_price: float,
    last_close: Optional[float],
    threshold: float = DEFAULT_DEVIATION_THRESHOLD,
) -> bool:
    """
    True when `new_price` jumps more than `threshold` (relative) away from
    the last close. With no last close yet (cold start) nothing is an outlier.
    """
    if not last_close:
        return False
    return abs((new_price - last_close) / last_close) > threshold
