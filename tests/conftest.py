"""
Pytest configuration file.

Sets up the Python path so test files can import the ecr_reaper package from
the python/ directory, and provides in-memory registry and workload fakes.
"""
import sys
from pathlib import Path

import pytest

# Add python directory to path for all tests
_python_dir = Path(__file__).parent.parent / 'python'
_python_dir_abs = str(_python_dir.absolute())
if _python_dir_abs not in sys.path:
    sys.path.insert(0, _python_dir_abs)

from ecr_reaper.ecr_client import RegistryClient
from ecr_reaper.workload import PodInfo, WorkloadClient


class FakeRegistry(RegistryClient):
    """RegistryClient over a dict of repository -> list of ImageRecord"""

    def __init__(self, repositories):
        self.repositories = repositories
        self.deleted = []
        self.describe_calls = 0

    def list_repositories(self):
        return list(self.repositories)

    def list_image_ids(self, repository):
        ids = []
        for image in self.repositories[repository]:
            if image.tags:
                ids.extend({'imageDigest': image.digest, 'imageTag': tag} for tag in image.tags)
            else:
                ids.append({'imageDigest': image.digest})
        return ids

    def describe_image(self, repository, image_id):
        self.describe_calls += 1
        return [img for img in self.repositories[repository] if img.digest == image_id['imageDigest']]

    def delete_image(self, repository, image_id):
        super().delete_image(repository, image_id)
        self.deleted.append((repository, image_id['imageDigest']))


class FakeWorkload(WorkloadClient):
    """WorkloadClient returning a fixed list of pods"""

    def __init__(self, pods):
        self.pods = pods
        self.calls = 0

    def list_pods(self):
        self.calls += 1
        return list(self.pods)


@pytest.fixture
def make_pod():
    """Factory for PodInfo objects"""
    def _make(*images, name='pod', namespace='default'):
        return PodInfo(name=name, namespace=namespace, images=list(images))
    return _make
