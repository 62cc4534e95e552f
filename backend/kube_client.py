"""
Kubernetes client for pod listing and deployment updates.
"""
import logging
from typing import List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from kube_types import Instance

logger = logging.getLogger(__name__)


class KubeClientError(Exception):
    """Base error for control-plane calls."""


class ConnectivityError(KubeClientError):
    """Transport, auth or API-server failure."""


class NotFoundError(KubeClientError):
    """Requested resource does not exist."""


class ConflictError(KubeClientError):
    """Write rejected because the resource changed underneath us."""


def translate_error(e: Exception, action: str) -> KubeClientError:
    """Map a kubernetes/urllib3 exception onto the client error taxonomy."""
    if isinstance(e, ApiException):
        if e.status == 404:
            return NotFoundError(f"{action}: not found")
        if e.status == 409:
            return ConflictError(f"{action}: conflict ({e.reason})")
        return ConnectivityError(f"{action}: API error {e.status} ({e.reason})")
    return ConnectivityError(f"{action}: {e}")


class KubeClient:
    """Kubernetes client for redeploy operations.

    Owns its ``ApiClient``; use it as a context manager so the connection
    pool is released on every exit path.
    """

    def __init__(
        self,
        in_cluster: bool = False,
        context: str | None = None,
        request_timeout: int = 30,
        page_size: int = 500,
        api_client: Optional[client.ApiClient] = None,
    ):
        """
        Initialize Kubernetes client.

        Args:
            in_cluster: Whether running inside cluster
            context: Kubernetes context name (optional)
            request_timeout: Default timeout in seconds for every API call
            page_size: Pods fetched per list request
            api_client: Preconfigured ApiClient; skips config loading
        """
        self.request_timeout = request_timeout
        self.page_size = page_size

        if api_client is None:
            api_client = self._load_api_client(in_cluster, context)

        self.api_client = api_client
        self.v1 = client.CoreV1Api(api_client)
        self.apps_v1 = client.AppsV1Api(api_client)

    @staticmethod
    def _load_api_client(in_cluster: bool, context: str | None) -> client.ApiClient:
        try:
            if in_cluster:
                configuration = client.Configuration()
                config.load_incluster_config(client_configuration=configuration)
                api_client = client.ApiClient(configuration)
            else:
                api_client = config.new_client_from_config(context=context)
            logger.info(f"✅ Kubernetes client initialized (in_cluster={in_cluster}, context={context})")
            return api_client

        except Exception as e:
            logger.error(f"❌ Failed to initialize Kubernetes client: {e}")
            raise ConnectivityError(f"loading cluster configuration: {e}") from e

    def __enter__(self) -> "KubeClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.api_client.close()
        logger.debug("Kubernetes client closed")

    def _timeout(self, request_timeout: int | None) -> int:
        return self.request_timeout if request_timeout is None else request_timeout

    def list_pods(self, namespace: str | None = None, request_timeout: int | None = None) -> List[Instance]:
        """
        Get pods, following continue tokens until the listing is complete.

        Args:
            namespace: Namespace to list; all namespaces when None
            request_timeout: Per-call timeout overriding the client default

        Returns:
            List of Instance objects
        """
        scope = namespace or "all namespaces"
        pod_list: List[Instance] = []
        token = None

        try:
            while True:
                kwargs = {
                    "limit": self.page_size,
                    "_request_timeout": self._timeout(request_timeout),
                }
                if token:
                    kwargs["_continue"] = token

                if namespace:
                    pods = self.v1.list_namespaced_pod(namespace=namespace, **kwargs)
                else:
                    pods = self.v1.list_pod_for_all_namespaces(**kwargs)

                for pod in pods.items:
                    pod_list.append(Instance(
                        name=pod.metadata.name,
                        namespace=pod.metadata.namespace,
                        labels=pod.metadata.labels or {},
                    ))

                token = pods.metadata._continue if pods.metadata else None
                if not token:
                    break

        except (ApiException, HTTPError) as e:
            logger.error(f"Failed to list pods in {scope}: {e}")
            raise translate_error(e, f"listing pods in {scope}") from e

        logger.info(f"Retrieved {len(pod_list)} pods from {scope}")
        return pod_list

    def get_deployment(
        self, namespace: str, name: str, request_timeout: int | None = None
    ) -> client.V1Deployment:
        try:
            return self.apps_v1.read_namespaced_deployment(
                name=name,
                namespace=namespace,
                _request_timeout=self._timeout(request_timeout),
            )
        except (ApiException, HTTPError) as e:
            raise translate_error(e, f"reading deployment {namespace}/{name}") from e

    def update_deployment(
        self, namespace: str, name: str, body: client.V1Deployment, request_timeout: int | None = None
    ) -> client.V1Deployment:
        """Replace the deployment with ``body`` in a single attempt."""
        try:
            return self.apps_v1.replace_namespaced_deployment(
                name=name,
                namespace=namespace,
                body=body,
                _request_timeout=self._timeout(request_timeout),
            )
        except (ApiException, HTTPError) as e:
            raise translate_error(e, f"updating deployment {namespace}/{name}") from e
