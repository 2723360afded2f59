"""Match registry image digests against container image references of running pods."""

from typing import Iterable, Optional, Set

from ecr_reaper.workload import PodInfo


def extract_digest(image_ref: str) -> Optional[str]:
    """Return the digest after '@' in an image reference, or None.

    Only references of the exact form ``name@digest`` yield a digest; tag-only
    references and anything with more than one '@' do not.
    """
    parts = image_ref.split("@")
    if len(parts) == 2:
        return parts[1]
    return None


def is_image_used_by_pods(digest: str, pods: Iterable[PodInfo]) -> bool:
    """Check if any container in any pod references the given digest"""
    for pod in pods:
        for image_ref in pod.images:
            if extract_digest(image_ref) == digest:
                return True
    return False


def collect_in_use_digests(pods: Iterable[PodInfo]) -> Set[str]:
    """Build the set of digests referenced by the given pods.

    Membership in this set is equivalent to is_image_used_by_pods(), without
    rescanning every pod for every registry image.
    """
    digests = set()
    for pod in pods:
        for image_ref in pod.images:
            digest = extract_digest(image_ref)
            if digest is not None:
                digests.add(digest)
    return digests
