"""
This package contains the manifest cache and the install/uninstall engine. A release is rendered once into a
multi-document manifest, the manifest is cached per release identity, and its documents are applied to or deleted from
a cluster one by one.
"""

from dataclasses import dataclass, field
from enum import Enum

from chartops.tools.types import Flags

NAMESPACE_FLAG = "Namespace"
""" Config flag naming the namespace the chart is rendered and installed into. Defaults to the release namespace. """

CREATE_NAMESPACE_FLAG = "CreateNamespace"
""" Config flag that makes the renderer prepend a `Namespace` document to the manifest. """


@dataclass(frozen=True)
class ReleaseIdentity:
    """
    Identifies one logical installable unit. Used as the cache key and as the scope for deletes.
    """

    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class ChartFlags:
    """
    Flags passed to the renderer.
    """

    config_flags: Flags = field(default_factory=dict)
    """ Flags that control how the chart is rendered, e.g. `Namespace` and `CreateNamespace`. """

    set_flags: Flags = field(default_factory=dict)
    """ Values for the chart templates. """

    @property
    def namespace(self) -> str | None:
        value = self.config_flags.get(NAMESPACE_FLAG)
        return str(value) if value else None


@dataclass
class InstallationSpec:
    """
    Everything needed to render the manifest of a release.
    """

    chart_path: str
    chart_flags: ChartFlags = field(default_factory=ChartFlags)


class Phase(str, Enum):
    """
    The phases an install or uninstall call moves through.
    """

    RESOLVING_MANIFEST = "ResolvingManifest"
    PARSING = "Parsing"
    EXECUTING = "Executing"
    DONE = "Done"
    FAILED = "Failed"


__all__ = [
    "CREATE_NAMESPACE_FLAG",
    "NAMESPACE_FLAG",
    "ChartFlags",
    "InstallationSpec",
    "Phase",
    "ReleaseIdentity",
]
