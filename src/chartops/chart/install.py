"""
The install/uninstall engine.

Both operations move through the same phases: the manifest of the release is resolved from the cache (and rendered on
a miss during install), parsed into documents, and the documents are then applied or deleted one by one in manifest
order. The first failing document stops the run; documents handled before it are left as they are. Retrying a failed
call is safe because applying and deleting are idempotent.
"""

from typing import TYPE_CHECKING, Literal

from chartops.chart import ChartFlags, Phase
from chartops.chart.config import Config
from chartops.chart.errors import ApplyError, CancelledError, ChartError, DeleteError, ParseError, RenderError
from chartops.chart.manifest import ManifestParseError, ResourceDocument, parse_manifest
from chartops.cluster import ClusterError, ClusterGateway
from chartops.context import ContextCancelledError
from chartops.renderer import ManifestRenderError

if TYPE_CHECKING:
    from loguru import Logger

Operation = Literal["install", "uninstall"]


def install(config: Config) -> None:
    """
    Apply every document of the release's manifest to the cluster. On a cache miss the manifest is rendered with
    `config.renderer` and stored in the cache before anything is applied.

    Raises:
        RenderError: If the manifest is not cached and cannot be rendered.
        ParseError: If the manifest contains a document that cannot be decoded. Nothing is applied.
        ApplyError: If the cluster rejects a document. Later documents are not applied.
        CancelledError: If `config.ctx` is cancelled or expires.
    """

    _run(config, "install")


def uninstall(config: Config) -> None:
    """
    Delete every resource of the release's cached manifest from the cluster. A release without a cached manifest has
    nothing to remove and succeeds. Resources that are already gone are skipped.

    Raises:
        ParseError: If the manifest contains a document that cannot be decoded. Nothing is deleted.
        DeleteError: If the cluster rejects a deletion. Later documents are not deleted.
        CancelledError: If `config.ctx` is cancelled or expires.
    """

    _run(config, "uninstall")


def _run(config: Config, operation: Operation) -> None:
    log = config.log.bind(release=str(config.release), operation=operation)
    log.debug("Starting {} of release '{}'", operation, config.release)

    try:
        log.debug("Entering phase {}", Phase.RESOLVING_MANIFEST.value)
        body, flags = _resolve_manifest(config, log, operation)

        log.debug("Entering phase {}", Phase.PARSING.value)
        try:
            documents = parse_manifest(body)
        except ManifestParseError as exc:
            raise ParseError(config.release, Phase.PARSING, exc.index, exc.message) from exc

        log.debug("Entering phase {} with {} document(s)", Phase.EXECUTING.value, len(documents))
        if documents:
            _execute(config, log, operation, documents, config.namespace_for(flags))
    except ChartError as exc:
        log.debug("Entering phase {}: {}", Phase.FAILED.value, exc)
        raise

    log.debug("Entering phase {}", Phase.DONE.value)
    log.info("Finished {} of release '{}' ({} document(s))", operation, config.release, len(documents))


def _resolve_manifest(config: Config, log: "Logger", operation: Operation) -> tuple[str, ChartFlags]:
    """
    Returns the manifest body of the release and the flags it was rendered with. The flags stored with a cached
    manifest take precedence over `config.flags`, so that both operations target the namespace the manifest was
    rendered for.
    """

    entry = config.cache.get(config.release)
    if entry is not None:
        log.debug("Using cached manifest of release '{}'", config.release)
        flags = entry.metadata if isinstance(entry.metadata, ChartFlags) else config.flags
        return entry.body, flags

    if operation == "uninstall":
        log.info("No cached manifest for release '{}', nothing to uninstall", config.release)
        return "", config.flags

    if config.renderer is None:
        raise RenderError(config.release, Phase.RESOLVING_MANIFEST, "manifest is not cached and no renderer is set")

    try:
        config.ctx.check()
    except ContextCancelledError as exc:
        raise CancelledError(config.release, Phase.RESOLVING_MANIFEST, exc.reason) from exc

    log.info("Rendering manifest of release '{}' with {}", config.release, config.renderer)
    try:
        body = config.renderer.render(config.release, config.flags)
    except ManifestRenderError as exc:
        raise RenderError(config.release, Phase.RESOLVING_MANIFEST, str(exc)) from exc

    config.cache.set(config.release, config.flags, body)
    return body, config.flags


def _execute(
    config: Config,
    log: "Logger",
    operation: Operation,
    documents: list[ResourceDocument],
    namespace: str,
) -> None:
    cluster: ClusterGateway | None = config.cluster
    if cluster is None:
        raise ValueError(f"Cannot {operation} release '{config.release}' without a cluster")

    for document in documents:
        identity = document.identity
        try:
            config.ctx.check()
            if operation == "install":
                log.debug("Applying document #{} ({})", document.index, identity)
                cluster.apply(config.ctx, document, namespace)
            else:
                log.debug("Deleting document #{} ({})", document.index, identity)
                cluster.delete(config.ctx, identity, namespace)
        except ContextCancelledError as exc:
            raise CancelledError(config.release, Phase.EXECUTING, exc.reason, identity) from exc
        except ClusterError as exc:
            error = ApplyError if operation == "install" else DeleteError
            raise error(config.release, Phase.EXECUTING, document.index, identity, exc) from exc
