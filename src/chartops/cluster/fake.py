from dataclasses import dataclass, field
import threading
from typing import Callable, Literal

from loguru import logger

from chartops.chart.manifest import ResourceDocument, ResourceIdentity
from chartops.cluster import ClusterError, ClusterGateway, is_cluster_scoped_kind, with_namespace
from chartops.context import Context
from chartops.tools.types import Manifest


@dataclass(frozen=True)
class GatewayCall:
    """
    Records a single call made against a `FakeClusterGateway`.
    """

    verb: Literal["apply", "delete"]
    identity: ResourceIdentity


@dataclass
class FakeClusterGateway(ClusterGateway):
    """
    An in-memory cluster. It keeps the applied manifests, records every call in `calls` and can be told to reject
    specific resources. Used in tests.
    """

    resources: dict[ResourceIdentity, Manifest] = field(default_factory=dict)
    """ The resources currently in the fake cluster, keyed by their namespace-resolved identity. """

    calls: list[GatewayCall] = field(default_factory=list)

    rejections: dict[tuple[str, str], str] = field(default_factory=dict)
    """ Maps `(kind, name)` to the message of the error raised when the resource is applied or deleted. """

    before_call: Callable[[GatewayCall], None] | None = None
    """ Invoked before every call is handled, e.g. to cancel the context halfway through a run. """

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def reject(self, kind: str, name: str, message: str = "rejected by fake cluster") -> None:
        self.rejections[(kind, name)] = message

    def _resolve(self, identity: ResourceIdentity, namespace: str | None) -> ResourceIdentity:
        if is_cluster_scoped_kind(identity.api_version, identity.kind):
            return identity.with_namespace(None)
        return identity.with_namespace(identity.namespace or namespace or "default")

    def _handle(self, ctx: Context, call: GatewayCall) -> None:
        if self.before_call is not None:
            self.before_call(call)
        ctx.check()
        with self._lock:
            self.calls.append(call)
        if (message := self.rejections.get((call.identity.kind, call.identity.name))) is not None:
            raise ClusterError(call.identity, message, status=422)

    def apply(self, ctx: Context, document: ResourceDocument, namespace: str | None = None) -> None:
        identity = self._resolve(document.identity, namespace)
        self._handle(ctx, GatewayCall("apply", identity))
        with self._lock:
            self.resources[identity] = with_namespace(document.manifest, identity.namespace)
        logger.trace("Fake cluster applied {}", identity)

    def delete(self, ctx: Context, identity: ResourceIdentity, namespace: str | None = None) -> None:
        identity = self._resolve(identity, namespace)
        self._handle(ctx, GatewayCall("delete", identity))
        with self._lock:
            if self.resources.pop(identity, None) is None:
                logger.trace("Fake cluster has no {}, nothing to delete", identity)
