"""
Registry access for AWS ECR.

RegistryClient is the seam the scanner talks to; EcrRegistryClient implements
it with boto3. Every API failure is wrapped in an ActionableError and
propagated - there are no retries and no partial results.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ecr_reaper.classifier import ImageRecord
from ecr_reaper.error_utils import create_registry_error
from ecr_reaper.logging_utils import get_logger

logger = get_logger(__name__)

ImageId = Dict[str, str]


class RegistryClient(ABC):
    """Read-only view of a container registry"""

    @abstractmethod
    def list_repositories(self) -> List[str]:
        """Return the names of all repositories"""

    @abstractmethod
    def list_image_ids(self, repository: str) -> List[ImageId]:
        """Return image identifiers ({'imageDigest': ..., 'imageTag': ...}) in a repository"""

    @abstractmethod
    def describe_image(self, repository: str, image_id: ImageId) -> List[ImageRecord]:
        """Return size and pull metadata for one image identifier"""

    def delete_image(self, repository: str, image_id: ImageId) -> None:
        """Dry run: report the image that would be deleted, never touch the registry."""
        logger.debug(f"The image {image_id.get('imageDigest')} ({repository}) would be deleted")


class EcrRegistryClient(RegistryClient):
    """RegistryClient backed by the boto3 ECR API"""

    def __init__(self, region: str, ecr_client: Any = None):
        """
        Args:
            region: AWS region hosting the registry
            ecr_client: Pre-built boto3 ECR client (used as-is when provided)
        """
        self.region = region
        if ecr_client is None:
            try:
                session = boto3.session.Session(region_name=region)
                ecr_client = session.client("ecr")
            except (BotoCoreError, ClientError) as e:
                raise create_registry_error(f"create AWS session in {region}", e) from e
        self.ecr = ecr_client

    def list_repositories(self) -> List[str]:
        try:
            paginator = self.ecr.get_paginator("describe_repositories")
            names = []
            for page in paginator.paginate():
                for repo in page.get("repositories", []):
                    names.append(repo["repositoryName"])
        except (BotoCoreError, ClientError) as e:
            raise create_registry_error("describe repositories", e) from e

        logger.debug(f"Found {len(names)} repositories in {self.region}")
        return names

    def list_image_ids(self, repository: str) -> List[ImageId]:
        try:
            paginator = self.ecr.get_paginator("list_images")
            image_ids = []
            for page in paginator.paginate(repositoryName=repository):
                image_ids.extend(page.get("imageIds", []))
        except (BotoCoreError, ClientError) as e:
            raise create_registry_error(f"list images in {repository}", e) from e
        return image_ids

    def describe_image(self, repository: str, image_id: ImageId) -> List[ImageRecord]:
        try:
            response = self.ecr.describe_images(repositoryName=repository, imageIds=[image_id])
        except (BotoCoreError, ClientError) as e:
            raise create_registry_error(f"describe image {_format_image_id(image_id)} in {repository}", e) from e

        return [self._to_record(repository, detail) for detail in response.get("imageDetails", [])]

    @staticmethod
    def _to_record(repository: str, detail: Dict[str, Any]) -> ImageRecord:
        return ImageRecord(
            digest=detail["imageDigest"],
            repository=detail.get("repositoryName", repository),
            size_bytes=int(detail.get("imageSizeInBytes", 0)),
            last_pulled=detail.get("lastRecordedPullTime"),
            tags=list(detail.get("imageTags", [])),
            pushed_at=detail.get("imagePushedAt"),
        )


def _format_image_id(image_id: ImageId) -> Optional[str]:
    return image_id.get("imageDigest") or image_id.get("imageTag")
