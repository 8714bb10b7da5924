from dataclasses import dataclass
from pathlib import Path

from loguru import logger
from typer import Argument, Exit
import yaml

from chartops.chart import InstallationSpec, ReleaseIdentity
from chartops.chart.manifest import ManifestParseError, parse_manifest
from chartops.project.config import ProjectConfig
from chartops.renderer import ManifestRenderError
from chartops.renderer.helmchart import HelmChartRenderer
from chartops.resolver import InvalidTypeError, ManifestResolver, release_identity
from chartops.resources import CustomResource
from chartops.tools.types import Manifest

from . import app


@dataclass
class ResolvedResource:
    """
    A custom resource loaded from a file, together with everything needed to render its manifest.
    """

    resource: CustomResource
    release: ReleaseIdentity
    spec: InstallationSpec
    renderer: HelmChartRenderer
    file: Path


@app.command()
def template(
    paths: list[Path] = Argument(..., help="The YAML file(s) with custom resources to render. Can be a directory."),
) -> None:
    """
    Render the manifests of custom resources and print them to stdout.
    """

    resolver = new_resolver()
    for item in resolve_resources(resolver, load_resources(paths)):
        logger.info("Rendering {} from {}", item.resource, item.file)
        try:
            documents = parse_manifest(item.renderer.render(item.release, item.spec.chart_flags))
        except (ManifestRenderError, ManifestParseError) as exc:
            logger.error("Failed to render {} from '{}': {}", item.resource, item.file, exc)
            raise Exit(1)

        for document in documents:
            print("---")
            print(document.text.strip("\n"))


def new_resolver() -> ManifestResolver:
    project = ProjectConfig.load()
    return ManifestResolver(project.config.chart_path, project.config.chart_namespace)


def load_resources(paths: list[Path]) -> list[tuple[CustomResource, Path]]:
    """
    Load all custom resources from the given files or directories. Documents that are not supported custom resources
    are reported and cause the command to exit.
    """

    logger.trace("Loading resources from paths: {}", paths)

    files = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(item for item in path.iterdir() if item.suffix in (".yaml", ".yml") and item.is_file()))
        else:
            files.append(path)

    result = []
    for file in files:
        for data in yaml.safe_load_all(file.read_text()):
            if data is None:
                continue
            try:
                result.append((CustomResource.load(Manifest(data)), file))
            except ValueError as exc:
                logger.error("Cannot load resource from '{}': {}", file, exc)
                raise Exit(1)

    return result


def resolve_resources(
    resolver: ManifestResolver, resources: list[tuple[CustomResource, Path]]
) -> list[ResolvedResource]:
    result = []
    for resource, file in resources:
        try:
            spec = resolver.get(resource)
        except InvalidTypeError as exc:
            logger.error("Cannot resolve resource from '{}': {}", file, exc)
            raise Exit(1)
        renderer = HelmChartRenderer(Path(spec.chart_path))
        result.append(ResolvedResource(resource, release_identity(resource), spec, renderer, file))
    return result
