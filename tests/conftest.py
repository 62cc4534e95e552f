import copy

import pytest
from kubernetes import client

from kube_client import NotFoundError
from kube_types import Instance


def make_deployment(namespace, name, annotations=None, replicas=3):
    return client.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, resource_version="1"),
        spec=client.V1DeploymentSpec(
            replicas=replicas,
            selector=client.V1LabelSelector(match_labels={"app": name}),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels={"app": name}, annotations=annotations),
                spec=client.V1PodSpec(
                    containers=[client.V1Container(name=name, image=f"registry.local/{name}:1.0")]
                ),
            ),
        ),
    )


class FakeKubeClient:
    """In-memory stand-in for KubeClient.

    get_deployment hands back the stored object itself, the way a caching
    client would, so tests can check it is never mutated in place.
    """

    def __init__(self, pods=None, deployments=None):
        self.pods = list(pods or [])
        self.deployments = {}
        for d in deployments or []:
            self.deployments[(d.metadata.namespace, d.metadata.name)] = d
        self.list_error = None
        self.get_errors = {}
        self.update_errors = {}
        self.list_calls = []
        self.updates = []
        self.closed = False
        self.timeouts = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self.closed = True

    def list_pods(self, namespace=None, request_timeout=None):
        self.timeouts.append(request_timeout)
        self.list_calls.append(namespace)
        if self.list_error:
            raise self.list_error
        return [p for p in self.pods if namespace is None or p.namespace == namespace]

    def get_deployment(self, namespace, name, request_timeout=None):
        self.timeouts.append(request_timeout)
        key = (namespace, name)
        if key in self.get_errors:
            raise self.get_errors[key]
        if key not in self.deployments:
            raise NotFoundError(f"reading deployment {namespace}/{name}: not found")
        return self.deployments[key]

    def update_deployment(self, namespace, name, body, request_timeout=None):
        self.timeouts.append(request_timeout)
        key = (namespace, name)
        if key in self.update_errors:
            raise self.update_errors[key]
        self.updates.append(key)
        self.deployments[key] = copy.deepcopy(body)
        return self.deployments[key]


@pytest.fixture
def fake_kube():
    return FakeKubeClient(
        pods=[
            Instance(name="database-0", namespace="prod", labels={"app": "database-svc"}),
            Instance(name="frontend-0", namespace="prod", labels={"app": "frontend-svc"}),
        ],
        deployments=[
            make_deployment("prod", "database-svc"),
            make_deployment("prod", "frontend-svc"),
        ],
    )


@pytest.fixture
def clock():
    """Deterministic RFC3339 timestamps, one per call."""
    stamps = iter(f"2026-10-19T12:00:{s:02d}Z" for s in range(60))
    return lambda: next(stamps)
