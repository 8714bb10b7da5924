from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Callable, TypeVar

from kubernetes.client.api_client import ApiClient
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import DynamicApiError, NotFoundError, ResourceNotFoundError
from kubernetes.dynamic.resource import Resource
from loguru import logger
from urllib3.exceptions import HTTPError

from chartops.chart.manifest import ResourceDocument, ResourceIdentity
from chartops.cluster import ClusterError, ClusterGateway, with_namespace
from chartops.context import Context, ContextCancelledError

DEFAULT_FIELD_MANAGER = "chartops"

T = TypeVar("T")


class DynamicClusterGateway(ClusterGateway):
    """
    A gateway that talks to the Kubernetes API server through the dynamic client of the `kubernetes` package.

    Documents are applied with server-side apply, which creates missing resources and updates existing ones in a
    single idempotent request. The remaining time of the context is passed as the request timeout. Requests run on a
    worker thread while the calling thread watches the context, so cancelling the context releases the caller without
    waiting for the API server to answer.
    """

    POLL_INTERVAL_SECONDS = 0.1

    def __init__(
        self,
        client: ApiClient | DynamicClient,
        field_manager: str = DEFAULT_FIELD_MANAGER,
        force_conflicts: bool = True,
        default_namespace: str = "default",
    ) -> None:
        """
        Args:
            client: The Kubernetes API client, or an already constructed dynamic client.
            field_manager: The field manager name used for server-side apply.
            force_conflicts: Take ownership of fields managed by other field managers.
            default_namespace: The namespace for namespaced resources if neither the document nor the caller specify
                one.
        """

        self._client = client if isinstance(client, DynamicClient) else DynamicClient(client)
        self._field_manager = field_manager
        self._force_conflicts = force_conflicts
        self._default_namespace = default_namespace
        self._executor = ThreadPoolExecutor(thread_name_prefix="chartops-dynamic")

    def _lookup(self, identity: ResourceIdentity) -> Resource:
        return self._client.resources.get(api_version=identity.api_version, kind=identity.kind)

    def _namespace(self, resource: Resource, identity: ResourceIdentity, namespace: str | None) -> str | None:
        if not resource.namespaced:
            return None
        return identity.namespace or namespace or self._default_namespace

    def _request_kwargs(self, ctx: Context) -> dict[str, Any]:
        ctx.check()
        timeout = ctx.remaining()
        return {} if timeout is None else {"_request_timeout": timeout}

    def _call(self, ctx: Context, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        future = self._executor.submit(func, *args, **kwargs, **self._request_kwargs(ctx))
        while True:
            try:
                return future.result(timeout=self.POLL_INTERVAL_SECONDS)
            except FutureTimeoutError:
                if (reason := ctx.reason) is not None:
                    future.cancel()
                    logger.debug("Abandoning request, context {}", reason)
                    raise ContextCancelledError(reason)

    def _translate(self, ctx: Context, identity: ResourceIdentity, exc: Exception) -> Exception:
        if ctx.reason is not None:
            return ContextCancelledError(ctx.reason)
        if isinstance(exc, DynamicApiError):
            return ClusterError(identity, f"{exc.reason}: {exc.summary()}", status=exc.status)
        return ClusterError(identity, str(exc))

    def apply(self, ctx: Context, document: ResourceDocument, namespace: str | None = None) -> None:
        identity = document.identity
        try:
            resource = self._lookup(identity)
        except ResourceNotFoundError as exc:
            raise ClusterError(identity, f"resource kind is not served by the cluster: {exc}") from exc
        except (DynamicApiError, HTTPError) as exc:
            raise self._translate(ctx, identity, exc) from exc

        target_namespace = self._namespace(resource, identity, namespace)
        body = with_namespace(document.manifest, target_namespace)

        logger.debug("Server-side applying {} (namespace={})", identity, target_namespace)
        try:
            self._call(
                ctx,
                self._client.server_side_apply,
                resource,
                body=body,
                name=identity.name,
                namespace=target_namespace,
                field_manager=self._field_manager,
                force_conflicts=self._force_conflicts,
            )
        except (DynamicApiError, HTTPError) as exc:
            raise self._translate(ctx, identity, exc) from exc

    def delete(self, ctx: Context, identity: ResourceIdentity, namespace: str | None = None) -> None:
        try:
            resource = self._lookup(identity)
        except ResourceNotFoundError:
            logger.debug("Resource kind of {} is not served by the cluster, nothing to delete", identity)
            return
        except (DynamicApiError, HTTPError) as exc:
            raise self._translate(ctx, identity, exc) from exc

        target_namespace = self._namespace(resource, identity, namespace)

        logger.debug("Deleting {} (namespace={})", identity, target_namespace)
        try:
            self._call(ctx, self._client.delete, resource, name=identity.name, namespace=target_namespace)
        except NotFoundError:
            logger.debug("{} does not exist, nothing to delete", identity)
        except (DynamicApiError, HTTPError) as exc:
            raise self._translate(ctx, identity, exc) from exc
