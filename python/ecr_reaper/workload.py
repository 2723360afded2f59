"""
Kubernetes workload inspection.

Lists pods in the cluster and exposes the container image references they
run, so images still in use can be kept out of the stale report.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ecr_reaper.error_utils import create_kubernetes_config_error, create_kubernetes_error
from ecr_reaper.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class PodInfo:
    """Data class for pod information"""
    name: str
    namespace: str
    images: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization"""
        return {
            'name': self.name,
            'namespace': self.namespace,
            'images': self.images,
        }


class WorkloadClient(ABC):
    """Source of the pods whose images must be preserved"""

    @abstractmethod
    def list_pods(self) -> List[PodInfo]:
        """Return every pod to cross-check, with its container image references"""


def _load_kubernetes_config() -> None:
    """Load Kubernetes configuration.

    Tries in-cluster config first, then falls back to local kubeconfig.

    Raises:
        ActionableError if both methods fail
    """
    try:
        config.load_incluster_config()
        logger.debug("Kubernetes client initialized with in-cluster config")
    except config.ConfigException as e:
        try:
            config.load_kube_config()
            logger.debug("Kubernetes client initialized from local kubeconfig")
        except Exception as e2:
            logger.debug(f"In-cluster config failed: {e}; kubeconfig failed: {e2}")
            raise create_kubernetes_config_error(e2) from e2


class KubernetesWorkloadClient(WorkloadClient):
    """WorkloadClient backed by the Kubernetes CoreV1 API"""

    def __init__(self, namespace: Optional[str] = None, core_v1_client: Any = None):
        """
        Args:
            namespace: Only list pods in this namespace; None lists all namespaces
            core_v1_client: Pre-built CoreV1Api (skips config loading)
        """
        self.namespace = namespace
        if core_v1_client is None:
            _load_kubernetes_config()
            core_v1_client = client.CoreV1Api()
        self.core_v1_client = core_v1_client

    def list_pods(self) -> List[PodInfo]:
        try:
            if self.namespace:
                pod_list = self.core_v1_client.list_namespaced_pod(namespace=self.namespace)
            else:
                pod_list = self.core_v1_client.list_pod_for_all_namespaces()
        except ApiException as e:
            scope = f"namespace {self.namespace}" if self.namespace else "all namespaces"
            raise create_kubernetes_error(f"list pods in {scope}", e) from e

        pods = [self._to_pod_info(pod) for pod in pod_list.items]
        logger.info(f"Found {len(pods)} pods to cross-check against the registry")
        return pods

    @staticmethod
    def _to_pod_info(pod: Any) -> PodInfo:
        containers = (pod.spec.containers if pod.spec else None) or []
        return PodInfo(
            name=pod.metadata.name,
            namespace=pod.metadata.namespace,
            images=[container.image for container in containers if container.image],
        )
