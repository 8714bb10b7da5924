from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from chartops.chart import ChartFlags, ReleaseIdentity
from chartops.chart.cache import ManifestCache
from chartops.cluster import ClusterGateway
from chartops.context import Context
from chartops.renderer import ManifestRenderer

if TYPE_CHECKING:
    from loguru import Logger


@dataclass
class Config:
    """
    Everything a single `install()` or `uninstall()` call needs. Built by the caller for one call and then discarded.
    """

    release: ReleaseIdentity
    """ The release to install or uninstall. """

    cache: ManifestCache
    """ The process-wide manifest cache. """

    cluster: ClusterGateway | None = None
    """ The cluster to act on. Only required when the manifest contains documents. """

    ctx: Context = field(default_factory=Context.background)
    """ Governs cancellation of every cluster call. """

    log: "Logger" = field(default_factory=lambda: logger)
    """ The logger to use. The release is bound to it for the duration of the call. """

    renderer: ManifestRenderer | None = None
    """ Renders the manifest on a cache miss during install. """

    flags: ChartFlags = field(default_factory=ChartFlags)
    """ Flags passed to the renderer. """

    namespace: str | None = None
    """
    The namespace for namespaced resources that do not declare one. Defaults to the `Namespace` config flag, then to
    the release namespace.
    """

    @property
    def target_namespace(self) -> str:
        return self.namespace_for(self.flags)

    def namespace_for(self, flags: ChartFlags) -> str:
        """
        The target namespace for a manifest that was rendered with *flags*.
        """

        return self.namespace or flags.namespace or self.release.namespace
