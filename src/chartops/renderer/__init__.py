"""
Renderers turn a release and its flags into manifest text. The install engine calls a renderer only when the manifest
of a release is not cached yet.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import textwrap

from chartops.chart import ChartFlags, ReleaseIdentity


@dataclass
class ManifestRenderError(Exception):
    """
    Represents an error that occurred while rendering the manifest of a release.
    """

    renderer: "ManifestRenderer"
    message: str

    def __str__(self) -> str:
        if "\n" in self.message:
            message = "\n\n" + textwrap.indent(self.message, "  ")
        else:
            message = f"{self.message}"
        return f"Error rendering manifest with {self.renderer}: {message}"


class ManifestRenderer(ABC):
    """
    Renders the manifest of a release.
    """

    @abstractmethod
    def render(self, release: ReleaseIdentity, flags: ChartFlags) -> str:
        """
        Render the manifest.

        Returns:
            The rendered manifest as a multi-document YAML string.
        Raises:
            ManifestRenderError: If the manifest cannot be rendered.
        """

        raise NotImplementedError


__all__ = [
    "ManifestRenderError",
    "ManifestRenderer",
]
