"""
The interface through which manifests reach a cluster. A gateway applies and deletes single resource documents; it
knows nothing about releases or caching.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import textwrap
from typing import Any

from chartops.chart.manifest import ResourceDocument, ResourceIdentity
from chartops.context import Context
from chartops.tools.types import Manifest

CLUSTER_SCOPED_KINDS = frozenset(
    {
        "APIService.apiregistration.k8s.io",
        "ClusterRole.rbac.authorization.k8s.io",
        "ClusterRoleBinding.rbac.authorization.k8s.io",
        "CustomResourceDefinition.apiextensions.k8s.io",
        "IngressClass.networking.k8s.io",
        "MutatingWebhookConfiguration.admissionregistration.k8s.io",
        "Namespace",
        "Node",
        "PersistentVolume",
        "PriorityClass.scheduling.k8s.io",
        "StorageClass.storage.k8s.io",
        "ValidatingWebhookConfiguration.admissionregistration.k8s.io",
    }
)
"""
Well-known cluster scoped resource kinds, in the form `Kind.group` (or just `Kind` for the core API). Used by gateways
that cannot ask the API server for discovery information.
"""


@dataclass
class ClusterError(Exception):
    """
    Raised by a gateway when the cluster rejected a request.
    """

    identity: ResourceIdentity
    message: str
    status: int | None = None

    def __str__(self) -> str:
        message = self.message
        if "\n" in message:
            message = "\n\n" + textwrap.indent(message, "  ")
        status = f" (status {self.status})" if self.status is not None else ""
        return f"{self.identity}{status}: {message}"


class ClusterGateway(ABC):
    """
    Thin interface to the resource store of a cluster.

    Implementations must be safe to share between threads. Every call honors the *ctx* it is given: when the context
    is cancelled or expires, the call is aborted and `chartops.context.ContextCancelledError` is raised.
    """

    @abstractmethod
    def apply(self, ctx: Context, document: ResourceDocument, namespace: str | None = None) -> None:
        """
        Create the resource if it does not exist, or update it otherwise. Applying the same document twice yields the
        same state and no error.

        Args:
            ctx: The execution context.
            document: The document to apply.
            namespace: The namespace to place namespaced resources in if the document does not specify one.
        Raises:
            ClusterError: If the cluster rejected the document.
        """

    @abstractmethod
    def delete(self, ctx: Context, identity: ResourceIdentity, namespace: str | None = None) -> None:
        """
        Delete a resource. Deleting a resource that does not exist, or whose kind is no longer served by the cluster,
        succeeds silently.

        Args:
            ctx: The execution context.
            identity: The identity of the resource to delete.
            namespace: The namespace to look in for namespaced resources if the identity does not specify one.
        Raises:
            ClusterError: If the cluster rejected the deletion.
        """


def get_canonical_resource_kind_name(api_version: str, kind: str) -> str:
    """
    Given the apiVersion and kind of a Kubernetes resource, return its canonical `Kind.group` name (or only `Kind` for
    resources of the core API).
    """

    return (f"{kind}." + (api_version.split("/")[0] if "/" in api_version else "")).rstrip(".")


def is_cluster_scoped_kind(api_version: str, kind: str) -> bool:
    """
    Check if a resource kind is one of the well-known cluster scoped kinds.
    """

    return get_canonical_resource_kind_name(api_version, kind) in CLUSTER_SCOPED_KINDS


def with_namespace(manifest: Manifest, namespace: str | None) -> Manifest:
    """
    Return a copy of *manifest* with `metadata.namespace` set to *namespace*, unless it already has one.
    """

    if namespace is None or manifest.get("metadata", {}).get("namespace"):
        return manifest

    result: dict[str, Any] = {**manifest, "metadata": {**manifest["metadata"], "namespace": namespace}}
    return Manifest(result)


__all__ = [
    "CLUSTER_SCOPED_KINDS",
    "ClusterError",
    "ClusterGateway",
    "get_canonical_resource_kind_name",
    "is_cluster_scoped_kind",
    "with_namespace",
]
