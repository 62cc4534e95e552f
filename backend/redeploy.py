"""
Find pods by name, resolve their owning deployments and restart them.

One pass per invocation: list pods, keep those whose name contains the
configured substring, read the owner label and stamp the restart annotation
on each owning deployment.
"""
from __future__ import annotations

import argparse
import copy
import logging
import sys
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set

from kubernetes import client

from config import Settings, settings as default_settings
from kube_client import KubeClient, KubeClientError
from kube_types import DeploymentRef, FailedRestart, Instance, RunResult

logger = logging.getLogger(__name__)

RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"


def list_all_instances(
    kube: KubeClient,
    namespace: Optional[str] = None,
    request_timeout: Optional[int] = None,
) -> List[Instance]:
    return kube.list_pods(namespace, request_timeout=request_timeout)


def matches(instance: Instance, needle: str) -> bool:
    return needle.lower() in instance.name.lower()


def resolve_deployment_name(instance: Instance, label: str = "app") -> Optional[str]:
    """Return the owning deployment name, or None when the label is missing or empty."""
    return (instance.labels or {}).get(label) or None


def rfc3339_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def restart_deployment(
    kube: KubeClient,
    namespace: str,
    name: str,
    now: Callable[[], str] = rfc3339_now,
    request_timeout: Optional[int] = None,
) -> str:
    """
    Trigger a rolling restart the way ``kubectl rollout restart`` does.

    Args:
        kube: Client used for the read and the replace
        namespace: Deployment namespace
        name: Deployment name
        now: RFC3339 timestamp source
        request_timeout: Seconds allowed for each API call; client default when None

    Returns:
        The timestamp written into the pod template

    Raises:
        NotFoundError, ConflictError, ConnectivityError
    """
    current = kube.get_deployment(namespace, name, request_timeout=request_timeout)

    # The client may hand back a shared object; only the copy is modified.
    deployment = copy.deepcopy(current)

    template = deployment.spec.template
    if template.metadata is None:
        template.metadata = client.V1ObjectMeta()
    if template.metadata.annotations is None:
        template.metadata.annotations = {}

    restarted_at = now()
    template.metadata.annotations[RESTARTED_AT_ANNOTATION] = restarted_at

    kube.update_deployment(namespace, name, deployment, request_timeout=request_timeout)
    return restarted_at


def run(
    kube: KubeClient,
    needle: str,
    namespace: Optional[str] = None,
    label: str = "app",
    dedupe: bool = False,
    now: Callable[[], str] = rfc3339_now,
    request_timeout: Optional[int] = None,
) -> RunResult:
    """
    Scan pods once and restart the deployment behind every match.

    A failed listing aborts the run; any per-pod failure is logged and
    recorded and the loop moves on. ``request_timeout`` bounds every API
    call of this run and falls back to the client's own timeout.
    """
    try:
        instances = list_all_instances(kube, namespace, request_timeout=request_timeout)
    except KubeClientError as e:
        logger.error(f"❌ Failed to list pods: {e}")
        return RunResult.fatal(e)

    result = RunResult()
    seen: Set[DeploymentRef] = set()

    for instance in instances:
        if not matches(instance, needle):
            continue

        logger.info(f"Found pod: {instance}")
        result.matched.append(instance)

        deployment_name = resolve_deployment_name(instance, label)
        if deployment_name is None:
            logger.warning(f"Pod {instance} does not have an associated deployment (no '{label}' label)")
            result.skipped.append(instance)
            continue

        ref = DeploymentRef(namespace=instance.namespace, name=deployment_name)
        if dedupe:
            if ref in seen:
                logger.info(f"Deployment {ref} already handled in this run, skipping")
                result.deduplicated.append(ref)
                continue
            seen.add(ref)

        logger.info(f"Restarting associated deployment: {ref}")
        try:
            restarted_at = restart_deployment(
                kube, ref.namespace, ref.name, now=now, request_timeout=request_timeout
            )
        except KubeClientError as e:
            logger.error(f"Failed to restart deployment {ref} (pod {instance}): {e}")
            result.failed.append(FailedRestart(instance=instance, ref=ref, error=str(e)))
            continue

        logger.info(f"✅ Restarted deployment {ref} at {restarted_at}")
        result.restarted.append(ref)

    logger.info(
        f"Done: {len(result.matched)} matched, {len(result.restarted)} restarted, "
        f"{len(result.skipped)} skipped, {len(result.failed)} failed"
    )
    return result


def run_with_settings(
    cfg: Settings,
    client_factory: Callable[..., KubeClient] = KubeClient,
) -> RunResult:
    """Build the client from settings, run once and always release the client."""
    try:
        kube = client_factory(
            in_cluster=cfg.K8S_IN_CLUSTER,
            context=cfg.K8S_CONTEXT,
            request_timeout=cfg.REQUEST_TIMEOUT_SECS,
            page_size=cfg.LIST_PAGE_SIZE,
        )
    except KubeClientError as e:
        return RunResult.fatal(e)

    with kube:
        return run(
            kube,
            needle=cfg.MATCH_SUBSTRING,
            namespace=cfg.NAMESPACE_SCOPE,
            label=cfg.OWNER_LABEL,
            dedupe=cfg.DEDUPE_DEPLOYMENTS,
        )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Restart the deployments owning pods whose name contains a substring"
    )
    parser.add_argument("--match", dest="MATCH_SUBSTRING", help="Substring to look for in pod names")
    parser.add_argument("--namespace", dest="NAMESPACE_SCOPE", help="Only scan this namespace")
    parser.add_argument("--label", dest="OWNER_LABEL", help="Pod label naming the owning deployment")
    parser.add_argument("--context", dest="K8S_CONTEXT", help="Kubeconfig context")
    parser.add_argument("--in-cluster", dest="K8S_IN_CLUSTER", action="store_true", default=None,
                        help="Use the pod service account instead of a kubeconfig")
    parser.add_argument("--dedupe", dest="DEDUPE_DEPLOYMENTS", action="store_true", default=None,
                        help="Restart each deployment at most once per run")
    parser.add_argument("--log-level", dest="LOG_LEVEL", help="info|debug|warning")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if v is not None}
    cfg = default_settings.model_copy(update=overrides)

    logging.basicConfig(
        level=getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )

    result = run_with_settings(cfg)
    if not result.ok:
        logger.error(f"❌ {cfg.APP_NAME} aborted: {result.error}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
