"""
Splitting of multi-document manifests into individually addressable resource documents.
"""

from dataclasses import dataclass
import re
from typing import Any, Iterable, Iterator

import yaml

from chartops.tools.types import Manifest

SEPARATOR = "---"
""" The token that separates documents in a manifest body. It must appear on a line of its own. """

_SEPARATOR_LINE = re.compile(r"^---[ \t]*\r?$", re.MULTILINE)


@dataclass
class ManifestParseError(Exception):
    """
    Raised when a document of a manifest body cannot be decoded into a resource with a known identity.
    """

    index: int | None
    message: str

    def __str__(self) -> str:
        if self.index is None:
            return self.message
        return f"document #{self.index}: {self.message}"


@dataclass(frozen=True)
class ResourceIdentity:
    """
    The identity of a Kubernetes resource as far as it can be determined from its manifest alone.
    """

    api_version: str
    kind: str
    name: str
    namespace: str | None = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}.{self.api_version} {self.namespace}/{self.name}"
        return f"{self.kind}.{self.api_version} {self.name}"

    @property
    def group(self) -> str:
        """
        The API group, which is empty for the core API.
        """

        return self.api_version.split("/")[0] if "/" in self.api_version else ""

    @property
    def version(self) -> str:
        return self.api_version.split("/")[-1]

    def with_namespace(self, namespace: str | None) -> "ResourceIdentity":
        return ResourceIdentity(self.api_version, self.kind, self.name, namespace)


@dataclass(frozen=True)
class ResourceDocument:
    """
    A single resource document extracted from a manifest body.
    """

    index: int
    """ The position of the document among the non-empty documents of the body. """

    text: str
    """ The raw text of the document, without separators. """

    manifest: Manifest
    """ The decoded document. """

    @property
    def identity(self) -> ResourceIdentity:
        metadata = self.manifest["metadata"]
        return ResourceIdentity(
            api_version=self.manifest["apiVersion"],
            kind=self.manifest["kind"],
            name=metadata["name"],
            namespace=metadata.get("namespace") or None,
        )


def is_blank_document(text: str) -> bool:
    """
    Check if a document consists only of whitespace and comments.
    """

    return all(not line.strip() or line.lstrip().startswith("#") for line in text.splitlines())


def split_documents(body: str) -> Iterator[str]:
    """
    Lazily split a manifest body on separator lines, skipping documents that are empty or contain only whitespace and
    comments. The documents are yielded in their original order.
    """

    start = 0
    for match in _SEPARATOR_LINE.finditer(body):
        text = body[start : match.start()]
        if not is_blank_document(text):
            yield text
        start = match.end()

    text = body[start:]
    if not is_blank_document(text):
        yield text


def decode_document(index: int, text: str) -> ResourceDocument:
    """
    Decode a single document and check that it carries a resource identity.

    Raises:
        ManifestParseError: If the text is not valid YAML, is not a mapping, or lacks `apiVersion`, `kind` or
            `metadata.name`.
    """

    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestParseError(index, f"invalid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ManifestParseError(index, f"expected a mapping, got {type(data).__name__}")

    for key in ("apiVersion", "kind"):
        if not isinstance(data.get(key), str) or not data[key]:
            raise ManifestParseError(index, f"missing or invalid {key!r}")

    metadata = data.get("metadata")
    if not isinstance(metadata, dict) or not isinstance(metadata.get("name"), str) or not metadata["name"]:
        raise ManifestParseError(index, f"{data['kind']} is missing 'metadata.name'")

    namespace = metadata.get("namespace")
    if namespace is not None and not isinstance(namespace, str):
        raise ManifestParseError(index, f"{data['kind']}/{metadata['name']} has an invalid 'metadata.namespace'")

    return ResourceDocument(index, text, Manifest(data))


class ManifestDocuments:
    """
    A lazy, restartable sequence of the resource documents in a manifest body. Every iteration starts over from the
    beginning of the body and decodes documents one at a time, so a decoding error surfaces only when the offending
    document is reached.
    """

    def __init__(self, body: str) -> None:
        self.body = body

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({len(self.body)} characters)"

    def __iter__(self) -> Iterator[ResourceDocument]:
        for index, text in enumerate(split_documents(self.body)):
            yield decode_document(index, text)


def parse_manifest(body: str) -> list[ResourceDocument]:
    """
    Parse all documents of a manifest body. An empty or whitespace-only body yields no documents and no error.

    Raises:
        ManifestParseError: If any document cannot be decoded. No documents are returned in that case, because the
            identities needed to act on them are unknown.
    """

    return list(ManifestDocuments(body))


def join_documents(documents: Iterable[ResourceDocument | str]) -> str:
    """
    Join documents back into a manifest body.
    """

    texts = [doc.text if isinstance(doc, ResourceDocument) else doc for doc in documents]
    return f"\n{SEPARATOR}\n".join(text.strip("\n") for text in texts)
