import atexit
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from kubernetes.client.api_client import ApiClient
from kubernetes.config.incluster_config import load_incluster_config
from kubernetes.config.kube_config import load_kube_config
from loguru import logger
from typer import Argument, Exit, Option

from chartops.chart.cache import ManifestCache
from chartops.chart.config import Config
from chartops.chart.errors import ChartError
from chartops.chart.install import install as install_release, uninstall as uninstall_release
from chartops.cluster import ClusterGateway
from chartops.cluster.dynamic import DynamicClusterGateway
from chartops.cluster.kubectl import KubectlClusterGateway
from chartops.context import Context
from chartops.project.config import ProjectConfig
from chartops.renderer import ManifestRenderError
from chartops.resolver import ManifestResolver
from chartops.tools.kubectl import Kubectl

from . import app
from .template import ResolvedResource, load_resources, resolve_resources


class GatewayKind(str, Enum):
    DYNAMIC = "dynamic"
    KUBECTL = "kubectl"


PATHS_ARGUMENT = Argument(..., help="The YAML file(s) with custom resources. Can be a directory.")
IN_CLUSTER_OPTION = Option(False, help="Use the in-cluster Kubernetes configuration.")
KUBECONFIG_OPTION = Option(None, envvar="KUBECONFIG", help="Path to the kubeconfig file.")
CONTEXT_OPTION = Option(None, "--context", help="The kubeconfig context to use.")
GATEWAY_OPTION = Option(None, help="How to talk to the cluster. Defaults to the project configuration.")
TIMEOUT_OPTION = Option(None, help="Abort after this many seconds per custom resource.")


@app.command()
def install(
    paths: list[Path] = PATHS_ARGUMENT,
    in_cluster: bool = IN_CLUSTER_OPTION,
    kubeconfig: Optional[Path] = KUBECONFIG_OPTION,
    context: Optional[str] = CONTEXT_OPTION,
    gateway: Optional[GatewayKind] = GATEWAY_OPTION,
    timeout: Optional[float] = TIMEOUT_OPTION,
) -> None:
    """
    Render and apply the manifests of custom resources.
    """

    project = ProjectConfig.load().config
    cache = ManifestCache(max_entries=project.cache_max_entries)
    resolver = ManifestResolver(project.chart_path, project.chart_namespace)
    items = resolve_resources(resolver, load_resources(paths))
    cluster = connect(gateway or GatewayKind(project.gateway), in_cluster, kubeconfig, context, project.field_manager)

    for item in items:
        logger.info("Installing {} from '{}'", item.resource, item.file)
        run(install_release, new_config(item, cache, cluster, timeout))


@app.command()
def uninstall(
    paths: list[Path] = PATHS_ARGUMENT,
    in_cluster: bool = IN_CLUSTER_OPTION,
    kubeconfig: Optional[Path] = KUBECONFIG_OPTION,
    context: Optional[str] = CONTEXT_OPTION,
    gateway: Optional[GatewayKind] = GATEWAY_OPTION,
    timeout: Optional[float] = TIMEOUT_OPTION,
) -> None:
    """
    Delete the resources that the manifests of custom resources consist of.
    """

    project = ProjectConfig.load().config
    cache = ManifestCache(max_entries=project.cache_max_entries)
    resolver = ManifestResolver(project.chart_path, project.chart_namespace)
    items = resolve_resources(resolver, load_resources(paths))
    cluster = connect(gateway or GatewayKind(project.gateway), in_cluster, kubeconfig, context, project.field_manager)

    for item in items:
        # A fresh process has an empty cache, so render the manifest that would have been installed.
        try:
            body = item.renderer.render(item.release, item.spec.chart_flags)
        except ManifestRenderError as exc:
            logger.error("Failed to render {} from '{}': {}", item.resource, item.file, exc)
            raise Exit(1)
        cache.set(item.release, item.spec.chart_flags, body)

        logger.info("Uninstalling {} from '{}'", item.resource, item.file)
        run(uninstall_release, new_config(item, cache, cluster, timeout))


def connect(
    gateway: GatewayKind,
    in_cluster: bool,
    kubeconfig: Path | None,
    context: str | None,
    field_manager: str,
) -> ClusterGateway:
    """
    Create the cluster gateway of the given kind.
    """

    if gateway == GatewayKind.KUBECTL:
        kubectl = Kubectl(context=context)
        atexit.register(kubectl.cleanup)
        if kubeconfig is not None and not in_cluster:
            kubectl.set_kubeconfig(kubeconfig)
        return KubectlClusterGateway(kubectl, field_manager=field_manager)

    if in_cluster:
        logger.info("Using in-cluster configuration.")
        load_incluster_config()
    else:
        logger.info("Using kubeconfig '{}'.", kubeconfig or "~/.kube/config")
        load_kube_config(config_file=str(kubeconfig) if kubeconfig else None, context=context)
    return DynamicClusterGateway(ApiClient(), field_manager=field_manager)


def new_config(item: ResolvedResource, cache: ManifestCache, cluster: ClusterGateway, timeout: float | None) -> Config:
    ctx = Context.background()
    if timeout is not None:
        ctx = ctx.with_timeout(timeout)
    return Config(
        release=item.release,
        cache=cache,
        cluster=cluster,
        ctx=ctx,
        renderer=item.renderer,
        flags=item.spec.chart_flags,
    )


def run(operation: Callable[[Config], None], config: Config) -> None:
    try:
        operation(config)
    except ChartError as exc:
        logger.error("{}", exc)
        raise Exit(1)
