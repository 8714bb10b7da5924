import pytest

from chartops.resources import CustomResource, ObjectMetadata
from chartops.resources.serverless import API_VERSION_OPERATOR, DockerRegistry, Serverless, ServerlessSpec
from chartops.tools.types import Manifest

MANIFEST = Manifest(
    {
        "apiVersion": "operator.kyma-project.io/v1alpha1",
        "kind": "Serverless",
        "metadata": {"name": "default", "namespace": "kyma-system", "uid": "8c2e6d4a", "resourceVersion": "1"},
        "spec": {"dockerRegistry": {"enableInternal": False, "secretName": "my-registry"}},
        "status": {"state": "Ready"},
    }
)


def test__CustomResource__load__dispatches_to_registered_kind() -> None:
    resource = CustomResource.load(MANIFEST)

    assert isinstance(resource, Serverless)
    assert resource.metadata == ObjectMetadata(name="default", namespace="kyma-system")
    assert resource.spec == ServerlessSpec(DockerRegistry(enableInternal=False, secretName="my-registry"))
    assert str(resource) == "Serverless kyma-system/default"
    assert MANIFEST["apiVersion"] == API_VERSION_OPERATOR


def test__CustomResource__load__unsupported_kind() -> None:
    assert not CustomResource.matches(Manifest({"apiVersion": "v1", "kind": "ConfigMap"}))
    with pytest.raises(ValueError):
        CustomResource.load(Manifest({"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "x"}}))


def test__Serverless__load__without_spec() -> None:
    manifest = Manifest({"apiVersion": API_VERSION_OPERATOR, "kind": "Serverless", "metadata": {"name": "default"}})

    assert Serverless.matches(manifest)
    resource = Serverless.load(manifest)
    assert resource.spec == ServerlessSpec()
    assert str(resource) == "Serverless default"


def test__Serverless__dump() -> None:
    manifest = Serverless(metadata=ObjectMetadata(name="default")).dump()

    assert manifest["apiVersion"] == API_VERSION_OPERATOR
    assert manifest["kind"] == "Serverless"
    assert manifest["metadata"]["name"] == "default"


def test__ServerlessSpec__default() -> None:
    spec = ServerlessSpec()
    spec.default()
    assert spec == ServerlessSpec(DockerRegistry(enableInternal=True))

    spec = ServerlessSpec(DockerRegistry(enableInternal=False))
    spec.default()
    assert spec == ServerlessSpec(DockerRegistry(enableInternal=False))


def test__ServerlessSpec__to_flags__leaves_out_unset_fields() -> None:
    assert ServerlessSpec().to_flags() == {}
    assert ServerlessSpec(DockerRegistry()).to_flags() == {}
    assert ServerlessSpec(DockerRegistry(enableInternal=False, secretName="creds")).to_flags() == {
        "dockerRegistry": {"enableInternal": False, "secretName": "creds"}
    }
