import pytest

from chartops.chart.manifest import (
    ManifestDocuments,
    ManifestParseError,
    ResourceIdentity,
    join_documents,
    parse_manifest,
    split_documents,
)

CONFIGMAP = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: settings
  namespace: apps
data:
  key: value
"""

DEPLOYMENT = """\
# Source: chart/templates/deployment.yaml
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
spec:
  replicas: 1
"""


@pytest.mark.parametrize(
    "body",
    ["", "   ", "\n\n", "---", "---\n---\n", "# just a comment\n", "---\n# Source: x\n---"],
)
def test__parse_manifest__blank_bodies_yield_no_documents(body: str) -> None:
    assert parse_manifest(body) == []


def test__parse_manifest__splits_documents_in_order() -> None:
    documents = parse_manifest(f"{CONFIGMAP}---\n{DEPLOYMENT}")

    assert [doc.index for doc in documents] == [0, 1]
    assert [doc.identity for doc in documents] == [
        ResourceIdentity("v1", "ConfigMap", "settings", "apps"),
        ResourceIdentity("apps/v1", "Deployment", "web", None),
    ]
    assert documents[1].manifest["spec"] == {"replicas": 1}


def test__parse_manifest__skips_blank_documents_without_counting_them() -> None:
    documents = parse_manifest(f"---\n\n---\n{CONFIGMAP}---\n# nothing here\n---   \n{DEPLOYMENT}---\n")

    assert [doc.index for doc in documents] == [0, 1]
    assert [doc.identity.kind for doc in documents] == ["ConfigMap", "Deployment"]


def test__parse_manifest__separator_must_be_alone_on_its_line() -> None:
    body = 'apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: x\ndata:\n  text: "a --- b"\n'
    assert len(parse_manifest(body)) == 1


def test__parse_manifest__malformed_yaml_raises() -> None:
    with pytest.raises(ManifestParseError) as excinfo:
        parse_manifest("api: test\n\tversion: test")
    assert excinfo.value.index == 0


def test__parse_manifest__reports_index_of_offending_document() -> None:
    with pytest.raises(ManifestParseError) as excinfo:
        parse_manifest(f"{CONFIGMAP}---\nfoo: [unclosed\n---\n{DEPLOYMENT}")
    assert excinfo.value.index == 1
    assert "document #1" in str(excinfo.value)


@pytest.mark.parametrize(
    "document",
    [
        "just a string",
        "- a\n- list\n",
        "kind: ConfigMap\nmetadata:\n  name: x\n",
        "apiVersion: v1\nmetadata:\n  name: x\n",
        "apiVersion: v1\nkind: ConfigMap\n",
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  namespace: x\n",
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: x\n  namespace: [a]\n",
    ],
)
def test__parse_manifest__documents_without_identity_raise(document: str) -> None:
    with pytest.raises(ManifestParseError):
        parse_manifest(document)


def test__ManifestDocuments__is_lazy_and_restartable() -> None:
    documents = ManifestDocuments(f"{CONFIGMAP}---\n{DEPLOYMENT}---\nnot: [valid\n")

    iterator = iter(documents)
    assert next(iterator).identity.name == "settings"
    assert next(iterator).identity.name == "web"
    with pytest.raises(ManifestParseError):
        next(iterator)

    assert next(iter(documents)).identity.name == "settings"


def test__split_documents__handles_crlf_separators() -> None:
    assert list(split_documents("a: 1\r\n---\r\nb: 2\r\n")) == ["a: 1\r\n", "\nb: 2\r\n"]


def test__join_documents__reverses_split() -> None:
    body = f"{CONFIGMAP}---\n{DEPLOYMENT}"
    documents = parse_manifest(body)

    rejoined = join_documents(documents)
    assert [doc.manifest for doc in parse_manifest(rejoined)] == [doc.manifest for doc in documents]
    assert join_documents(["a: 1\n", "b: 2\n"]) == "a: 1\n---\nb: 2"


def test__ResourceIdentity__group_and_version() -> None:
    assert ResourceIdentity("apps/v1", "Deployment", "web").group == "apps"
    assert ResourceIdentity("apps/v1", "Deployment", "web").version == "v1"
    assert ResourceIdentity("v1", "Service", "web").group == ""
    assert ResourceIdentity("v1", "Service", "web").version == "v1"
    assert str(ResourceIdentity("v1", "Service", "web", "apps")) == "Service.v1 apps/web"
