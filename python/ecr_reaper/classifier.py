"""
Image classification by pull age.

An image is never-pulled when ECR has no recorded pull, stale when its last
pull is strictly before the threshold, and fresh otherwise. Images matched to
a running pod are in-use and are never flagged.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional

DEFAULT_THRESHOLD_DAYS = 365


class Classification(Enum):
    """Outcome of classifying a single image"""
    NEVER_PULLED = "never_pulled"
    STALE = "stale"
    FRESH = "fresh"
    IN_USE = "in_use"

    @property
    def is_flagged(self) -> bool:
        """True for the classes that count towards the reclaimable totals"""
        return self in (Classification.NEVER_PULLED, Classification.STALE)


@dataclass
class ImageRecord:
    """Data class for a single registry image"""
    digest: str
    repository: str
    size_bytes: int
    last_pulled: Optional[datetime] = None
    tags: List[str] = field(default_factory=list)
    pushed_at: Optional[datetime] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization"""
        return {
            'digest': self.digest,
            'repository': self.repository,
            'size_bytes': self.size_bytes,
            'last_pulled': self.last_pulled,
            'tags': self.tags,
            'pushed_at': self.pushed_at,
        }


def compute_threshold(days: int = DEFAULT_THRESHOLD_DAYS, now: Optional[datetime] = None) -> datetime:
    """Return the cutoff instant ``now - days``.

    Args:
        days: Whole-day age threshold (non-negative)
        now: Reference time; defaults to the current UTC time. Naive values are taken as UTC.

    Returns:
        Timezone-aware datetime
    """
    if days < 0:
        raise ValueError(f"days must be non-negative, got: {days}")
    if now is None:
        now = datetime.now(timezone.utc)
    try:
        return _as_aware(now) - timedelta(days=days)
    except OverflowError:
        # Earlier than any representable date: nothing can be stale
        return datetime.min.replace(tzinfo=timezone.utc)


def classify_image(image: ImageRecord, threshold: datetime, in_use: bool = False) -> Classification:
    """Classify one image against the pull-age threshold.

    Args:
        image: Image to classify
        threshold: Cutoff from compute_threshold(); pulls strictly before it are stale
        in_use: Whether a running pod references this image's digest

    Returns:
        Classification for the image
    """
    if in_use:
        return Classification.IN_USE
    if image.last_pulled is None:
        return Classification.NEVER_PULLED
    if _as_aware(image.last_pulled) < _as_aware(threshold):
        return Classification.STALE
    return Classification.FRESH


def _as_aware(value: datetime) -> datetime:
    # boto3 returns aware datetimes; tests and callers may pass naive UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
