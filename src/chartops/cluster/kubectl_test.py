from unittest.mock import MagicMock

import pytest

from chartops.chart.manifest import ResourceDocument, ResourceIdentity
from chartops.cluster import ClusterError
from chartops.cluster.kubectl import KubectlClusterGateway
from chartops.context import Context
from chartops.tools.kubectl import Kubectl, KubectlError


def _document(namespace: str | None = None) -> ResourceDocument:
    metadata = {"name": "settings"}
    if namespace is not None:
        metadata["namespace"] = namespace
    return ResourceDocument(0, "", {"apiVersion": "v1", "kind": "ConfigMap", "metadata": metadata})


def test__KubectlClusterGateway__apply__passes_namespace_if_document_has_none() -> None:
    kubectl = MagicMock(spec=Kubectl)
    ctx = Context.background()
    document = _document()

    KubectlClusterGateway(kubectl, field_manager="test").apply(ctx, document, "apps")

    kubectl.apply.assert_called_once_with(
        ctx,
        [document.manifest],
        namespace="apps",
        force_conflicts=True,
        field_manager="test",
    )


def test__KubectlClusterGateway__apply__document_namespace_wins() -> None:
    kubectl = MagicMock(spec=Kubectl)
    KubectlClusterGateway(kubectl).apply(Context.background(), _document("other"), "apps")

    assert kubectl.apply.call_args.kwargs["namespace"] is None


def test__KubectlClusterGateway__apply__failure_becomes_cluster_error() -> None:
    kubectl = MagicMock(spec=Kubectl)
    kubectl.apply.side_effect = KubectlError(1, 'Error from server (Forbidden): configmaps "settings" is forbidden')

    with pytest.raises(ClusterError) as excinfo:
        KubectlClusterGateway(kubectl).apply(Context.background(), _document(), "apps")

    assert excinfo.value.status == 1
    assert "forbidden" in excinfo.value.message


def test__KubectlClusterGateway__delete__builds_minimal_manifest() -> None:
    kubectl = MagicMock(spec=Kubectl)
    ctx = Context.background()

    KubectlClusterGateway(kubectl).delete(ctx, ResourceIdentity("v1", "ConfigMap", "settings"), "apps")

    kubectl.delete.assert_called_once_with(
        ctx,
        [{"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "settings"}}],
        namespace="apps",
    )


def test__KubectlClusterGateway__delete__unknown_kind_is_not_an_error() -> None:
    kubectl = MagicMock(spec=Kubectl)
    kubectl.delete.side_effect = KubectlError(
        1, 'error: resource mapping not found for name: "x": no matches for kind "Widget" in version "example.com/v1"'
    )

    KubectlClusterGateway(kubectl).delete(Context.background(), ResourceIdentity("example.com/v1", "Widget", "x"))


def test__KubectlClusterGateway__delete__failure_becomes_cluster_error() -> None:
    kubectl = MagicMock(spec=Kubectl)
    kubectl.delete.side_effect = KubectlError(1, "Unable to connect to the server")

    with pytest.raises(ClusterError):
        KubectlClusterGateway(kubectl).delete(Context.background(), ResourceIdentity("v1", "ConfigMap", "x", "apps"))
    assert kubectl.delete.call_args.kwargs["namespace"] is None
