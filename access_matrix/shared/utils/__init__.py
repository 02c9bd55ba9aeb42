"""Shared utilities: datetime and generators."""

from access_matrix.shared.utils.datetime import ensure_utc, utc_now
from access_matrix.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
]
