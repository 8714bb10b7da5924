from loguru import logger

from chartops.chart.manifest import ResourceDocument, ResourceIdentity
from chartops.cluster import ClusterError, ClusterGateway
from chartops.context import Context
from chartops.tools.kubectl import Kubectl, KubectlError
from chartops.tools.types import Manifest, Manifests

# Printed by kubectl when a manifest refers to a kind the API server does not know (e.g. after its CRD was deleted).
_NO_MATCHES_FOR_KIND = "no matches for kind"


class KubectlClusterGateway(ClusterGateway):
    """
    A gateway that shells out to `kubectl`. Documents are applied with `kubectl apply --server-side` and deleted with
    `kubectl delete --ignore-not-found`, one document per invocation.
    """

    def __init__(self, kubectl: Kubectl, field_manager: str = "chartops", force_conflicts: bool = True) -> None:
        self._kubectl = kubectl
        self._field_manager = field_manager
        self._force_conflicts = force_conflicts

    def apply(self, ctx: Context, document: ResourceDocument, namespace: str | None = None) -> None:
        identity = document.identity
        try:
            self._kubectl.apply(
                ctx,
                Manifests([document.manifest]),
                namespace=None if identity.namespace else namespace,
                force_conflicts=self._force_conflicts,
                field_manager=self._field_manager,
            )
        except KubectlError as exc:
            raise ClusterError(identity, exc.stderr or str(exc), status=exc.statuscode) from exc

    def delete(self, ctx: Context, identity: ResourceIdentity, namespace: str | None = None) -> None:
        metadata = {"name": identity.name}
        if identity.namespace:
            metadata["namespace"] = identity.namespace
        manifest = Manifest({"apiVersion": identity.api_version, "kind": identity.kind, "metadata": metadata})

        try:
            self._kubectl.delete(ctx, Manifests([manifest]), namespace=None if identity.namespace else namespace)
        except KubectlError as exc:
            if exc.stderr and _NO_MATCHES_FOR_KIND in exc.stderr:
                logger.debug("Resource kind of {} is not served by the cluster, nothing to delete", identity)
                return
            raise ClusterError(identity, exc.stderr or str(exc), status=exc.statuscode) from exc
