from dataclasses import dataclass, field
from typing import Any

from chartops.resources import CustomResource, ObjectMetadata
from chartops.tools.types import Flags

API_VERSION_OPERATOR = "operator.kyma-project.io/v1alpha1"


@dataclass
class DockerRegistry:
    """
    Configures the Docker registry that function images are pushed to.
    """

    enableInternal: bool | None = None
    """ Deploy and use the registry that is shipped with the chart. Defaults to `True`. """

    secretName: str | None = None
    """ Name of a Secret with the credentials of an external registry. Only used if `enableInternal` is `False`. """


@dataclass
class ServerlessSpec:
    dockerRegistry: DockerRegistry | None = None

    def default(self) -> None:
        """
        Populate fields that are not set with their default values.
        """

        if self.dockerRegistry is None:
            self.dockerRegistry = DockerRegistry()
        if self.dockerRegistry.enableInternal is None:
            self.dockerRegistry.enableInternal = True

    def to_flags(self) -> Flags:
        """
        Map the spec to the chart values that it controls. Fields that are not set are left out so the chart's own
        defaults apply.
        """

        flags: Flags = {}
        if self.dockerRegistry is not None:
            registry: dict[str, Any] = {}
            if self.dockerRegistry.enableInternal is not None:
                registry["enableInternal"] = self.dockerRegistry.enableInternal
            if self.dockerRegistry.secretName is not None:
                registry["secretName"] = self.dockerRegistry.secretName
            if registry:
                flags["dockerRegistry"] = registry
        return flags


@dataclass(kw_only=True)
class Serverless(CustomResource, api_version=API_VERSION_OPERATOR):
    """
    Installs the Serverless module into a cluster.
    """

    metadata: ObjectMetadata
    spec: ServerlessSpec = field(default_factory=ServerlessSpec)
