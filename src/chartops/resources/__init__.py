"""
This package contains the custom resources that chartops knows how to install.
"""

from abc import ABC
from dataclasses import dataclass
from typing import Any, ClassVar, cast
from typing_extensions import Self
from databind.core import ExtraKeys
from databind.json import load as deser, dump as ser

from chartops.tools.types import Manifest


@ExtraKeys()
@dataclass
class ObjectMetadata:
    """
    Kubernetes object metadata. Fields set by the API server, such as `uid` or `resourceVersion`, are ignored.
    """

    name: str
    namespace: str | None = None
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None


class CustomResource(ABC):
    """
    Base class for custom resources. Subclasses register themselves by their `apiVersion` and `kind`, which allows
    `CustomResource.load()` to deserialize a manifest into the matching subclass.
    """

    API_VERSION: ClassVar[str]
    """
    The API version of the resource, e.g. `operator.kyma-project.io/v1alpha1`.
    """

    KIND: ClassVar[str]
    """
    The kind identifier of the resource. If not set, this will default to the class name.
    """

    _registry: ClassVar[dict[tuple[str, str], type["CustomResource"]]] = {}

    metadata: ObjectMetadata

    def __init_subclass__(cls, api_version: str, kind: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.API_VERSION = api_version
        if kind is not None or "KIND" not in vars(cls):
            cls.KIND = kind or cls.__name__
        CustomResource._registry[(cls.API_VERSION, cls.KIND)] = cls

    @classmethod
    def load(cls, manifest: Manifest) -> "Self":
        """
        Load a custom resource from a manifest. If called directly on `CustomResource`, this will deserialize into the
        subclass registered for the manifest's `apiVersion` and `kind`. If the method is instead called on a subclass,
        the manifest must match that subclass.
        """

        subcls = _lookup(manifest)
        if subcls is None:
            raise ValueError(
                f"Unsupported resource: apiVersion={manifest.get('apiVersion')!r}, kind={manifest.get('kind')!r}"
            )
        if cls is not CustomResource and subcls is not cls:
            raise ValueError(f"Expected kind {cls.KIND!r}, got {manifest.get('kind')!r}")

        manifest = Manifest(dict(manifest))
        manifest.pop("apiVersion")
        manifest.pop("kind")
        manifest.pop("status", None)

        return cast(Self, deser(manifest, subcls))

    @classmethod
    def matches(cls, manifest: Manifest) -> bool:
        """
        Check if the manifest is a known custom resource (of the correct kind, if called on a subclass).
        """

        subcls = _lookup(manifest)
        return subcls is not None and (cls is CustomResource or subcls is cls)

    def dump(self) -> Manifest:
        """
        Dump the resource to a manifest.
        """

        manifest = cast(Manifest, ser(self, type(self)))
        manifest["apiVersion"] = self.API_VERSION
        manifest["kind"] = self.KIND
        return Manifest(manifest)

    def __str__(self) -> str:
        if self.metadata.namespace:
            return f"{self.KIND} {self.metadata.namespace}/{self.metadata.name}"
        return f"{self.KIND} {self.metadata.name}"


def _lookup(manifest: Manifest) -> type[CustomResource] | None:
    api_version, kind = manifest.get("apiVersion"), manifest.get("kind")
    if not isinstance(api_version, str) or not isinstance(kind, str):
        return None
    return CustomResource._registry.get((api_version, kind))
