"""
Turns a custom resource into the information needed to render and install its manifest.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from loguru import logger

from chartops.chart import CREATE_NAMESPACE_FLAG, NAMESPACE_FLAG, ChartFlags, InstallationSpec, ReleaseIdentity
from chartops.resources import CustomResource
from chartops.resources.serverless import Serverless

SupportedResource = Union[Serverless]
""" The custom resource kinds that can be resolved into an installation. """

DEFAULT_CHART_NAMESPACE = "kyma-system"


@dataclass
class InvalidTypeError(Exception):
    """
    Raised when an object that is not a supported custom resource is passed to the resolver.
    """

    obj: object

    def __str__(self) -> str:
        if isinstance(self.obj, CustomResource):
            return f"invalid type conversion for {self.obj}"
        return f"invalid type conversion for object of type {type(self.obj).__name__}"


def release_identity(resource: CustomResource) -> ReleaseIdentity:
    """
    The release identity of a custom resource is its name and namespace.
    """

    return ReleaseIdentity(resource.metadata.name, resource.metadata.namespace or "default")


@dataclass
class ManifestResolver:
    """
    Resolves a custom resource to the chart that installs it and the flags to render the chart with.
    """

    chart_path: Path
    chart_namespace: str = DEFAULT_CHART_NAMESPACE

    def get(self, obj: object) -> InstallationSpec:
        """
        Raises:
            InvalidTypeError: If *obj* is not one of the `SupportedResource` kinds.
        """

        if not isinstance(obj, SupportedResource):
            raise InvalidTypeError(obj)

        obj.spec.default()
        logger.debug("Resolved {} to chart '{}' in namespace '{}'", obj, self.chart_path, self.chart_namespace)

        return InstallationSpec(
            chart_path=str(self.chart_path),
            chart_flags=ChartFlags(
                config_flags={
                    NAMESPACE_FLAG: self.chart_namespace,
                    CREATE_NAMESPACE_FLAG: True,
                },
                set_flags=obj.spec.to_flags(),
            ),
        )
