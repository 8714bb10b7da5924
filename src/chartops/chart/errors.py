from dataclasses import dataclass

from chartops.chart import Phase, ReleaseIdentity
from chartops.chart.manifest import ResourceIdentity


@dataclass
class ChartError(Exception):
    """
    Base class for errors raised by `install()` and `uninstall()`. Carries the release and the phase in which the call
    failed.
    """

    release: ReleaseIdentity
    phase: Phase

    def _prefix(self) -> str:
        return f"release {self.release} ({self.phase.value})"


@dataclass
class RenderError(ChartError):
    """
    The manifest of a release was not cached and could not be rendered.
    """

    message: str

    def __str__(self) -> str:
        return f"{self._prefix()}: rendering failed: {self.message}"


@dataclass
class ParseError(ChartError):
    """
    The manifest body is not empty but at least one of its documents cannot be decoded into a resource identity.
    """

    index: int | None
    message: str

    def __str__(self) -> str:
        where = "" if self.index is None else f" in document #{self.index}"
        return f"{self._prefix()}: failed to parse manifest{where}: {self.message}"


@dataclass
class ApplyError(ChartError):
    """
    The cluster rejected a document during install.
    """

    index: int
    identity: ResourceIdentity
    cause: Exception

    def __str__(self) -> str:
        return f"{self._prefix()}: failed to apply document #{self.index} ({self.identity}): {self.cause}"


@dataclass
class DeleteError(ChartError):
    """
    The cluster rejected the deletion of a document during uninstall.
    """

    index: int
    identity: ResourceIdentity
    cause: Exception

    def __str__(self) -> str:
        return f"{self._prefix()}: failed to delete document #{self.index} ({self.identity}): {self.cause}"


@dataclass
class CancelledError(ChartError):
    """
    The execution context was cancelled or its deadline passed before the call finished.
    """

    reason: str
    identity: ResourceIdentity | None = None

    def __str__(self) -> str:
        where = "" if self.identity is None else f" at {self.identity}"
        return f"{self._prefix()}: {self.reason}{where}"
