"""
Stale image scanner.

Walks every repository and image in the registry, classifies each image by
its last pull time, and accumulates the bytes held by never-pulled and stale
images. In workload-aware mode, images whose digest is referenced by a pod
are skipped. The scan is sequential and stops at the first collaborator error.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from tabulate import tabulate

from ecr_reaper.classifier import (
    DEFAULT_THRESHOLD_DAYS,
    Classification,
    ImageRecord,
    classify_image,
    compute_threshold,
)
from ecr_reaper.ecr_client import RegistryClient
from ecr_reaper.image_usage import collect_in_use_digests
from ecr_reaper.logging_utils import get_logger
from ecr_reaper.report_utils import bytes_to_gb, save_table_and_json, sizeof_fmt
from ecr_reaper.workload import WorkloadClient

logger = get_logger(__name__)


@dataclass
class ScanSummary:
    """Running totals for one scan"""
    days: int
    threshold: datetime
    never_pulled_bytes: int = 0
    stale_bytes: int = 0
    counts: Dict[Classification, int] = field(default_factory=lambda: {c: 0 for c in Classification})
    flagged: List[Tuple[ImageRecord, Classification]] = field(default_factory=list)

    def add(self, image: ImageRecord, classification: Classification) -> None:
        self.counts[classification] += 1
        if classification is Classification.NEVER_PULLED:
            self.never_pulled_bytes += image.size_bytes
        elif classification is Classification.STALE:
            self.stale_bytes += image.size_bytes
        if classification.is_flagged:
            self.flagged.append((image, classification))

    @property
    def total_bytes(self) -> int:
        return self.never_pulled_bytes + self.stale_bytes

    def summary_lines(self) -> List[str]:
        return [
            f"Total size of images never pulled: {bytes_to_gb(self.never_pulled_bytes):.2f} GB",
            f"Total size of images older than {self.days} days: {bytes_to_gb(self.stale_bytes):.2f} GB",
        ]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization"""
        return {
            'days': self.days,
            'threshold': self.threshold,
            'never_pulled_bytes': self.never_pulled_bytes,
            'stale_bytes': self.stale_bytes,
            'total_bytes': self.total_bytes,
            'counts': {c.value: n for c, n in self.counts.items()},
            'images': [
                dict(image.to_dict(), classification=classification.value)
                for image, classification in self.flagged
            ],
        }


class StaleImageScanner:
    """Finds never-pulled and stale images in a registry"""

    def __init__(
        self,
        registry: RegistryClient,
        days: int = DEFAULT_THRESHOLD_DAYS,
        workload: Optional[WorkloadClient] = None,
        now: Optional[datetime] = None,
    ):
        """
        Args:
            registry: Registry to scan
            days: Images last pulled more than this many days ago are stale
            workload: When given, images referenced by its pods are preserved
            now: Reference time for the threshold (defaults to current UTC time)
        """
        self.registry = registry
        self.days = days
        self.workload = workload
        self.threshold = compute_threshold(days, now)

    def _in_use_digests(self) -> Set[str]:
        if self.workload is None:
            return set()
        digests = collect_in_use_digests(self.workload.list_pods())
        logger.info(f"Found {len(digests)} image digests referenced by pods")
        return digests

    def run(self) -> ScanSummary:
        """Scan the whole registry and return the accumulated totals.

        Raises:
            ActionableError: propagated from the registry or workload client
        """
        summary = ScanSummary(days=self.days, threshold=self.threshold)
        in_use = self._in_use_digests()

        for repository in self.registry.list_repositories():
            # list_images returns one identifier per tag; count each digest once
            seen: Set[str] = set()
            for image_id in self.registry.list_image_ids(repository):
                if image_id.get("imageDigest") in seen:
                    continue
                for image in self.registry.describe_image(repository, image_id):
                    if image.digest in seen:
                        continue
                    seen.add(image.digest)
                    classification = classify_image(image, self.threshold, in_use=image.digest in in_use)
                    summary.add(image, classification)
                    self._report_image(image, classification, image_id)

        return summary

    def _report_image(self, image: ImageRecord, classification: Classification, image_id: Dict[str, str]) -> None:
        if classification is Classification.NEVER_PULLED:
            logger.info(f"Image {image.digest} ({image.repository}) is never pulled, size: {image.size_bytes}")
        elif classification is Classification.STALE:
            logger.info(
                f"Image {image.digest} ({image.repository}) was last pulled over {self.days} days ago, "
                f"size: {image.size_bytes}"
            )
        elif classification is Classification.IN_USE:
            logger.debug(f"Image {image.digest} ({image.repository}) is used by a running pod, skipping")
            return
        else:
            return
        self.registry.delete_image(image.repository, image_id)


def log_summary(summary: ScanSummary) -> None:
    """Log the two GB total lines.

    They are the tool's result, so they are emitted as INFO records even when
    the configured level is higher.
    """
    for line in summary.summary_lines():
        logger.handle(logger.makeRecord(logger.name, logging.INFO, __file__, 0, line, (), None))
    logger.debug(
        f"Flagged {len(summary.flagged)} images holding {sizeof_fmt(summary.total_bytes)} "
        f"(in use: {summary.counts[Classification.IN_USE]}, fresh: {summary.counts[Classification.FRESH]})"
    )


def write_report(summary: ScanSummary, base_path: str) -> str:
    """Save flagged images as <base>.txt (grid table) and <base>.json, largest first.

    Returns:
        Path to the saved JSON file
    """
    headers = ["Repository", "Digest", "Tags", "Size", "Last Pulled", "Classification"]
    rows = []
    for image, classification in sorted(summary.flagged, key=lambda x: x[0].size_bytes, reverse=True):
        last_pulled = image.last_pulled.isoformat() if image.last_pulled else "never"
        rows.append([
            image.repository,
            image.digest,
            ", ".join(image.tags),
            sizeof_fmt(image.size_bytes),
            last_pulled,
            classification.value,
        ])

    table = tabulate(rows, headers=headers, tablefmt="grid")
    table += "\n\n" + "\n".join(summary.summary_lines()) + "\n"
    return save_table_and_json(base_path, table, summary.to_dict())
