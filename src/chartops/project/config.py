from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from loguru import logger

from chartops.tools.fs import find_config_file


@dataclass
class Project:
    """
    Configuration for a chartops project that is stored in a `chartops-project.yaml` file.
    """

    chart_path: Path = Path("chart")
    """
    Path to the Helm chart that is installed for each custom resource. Relative to the configuration file.
    """

    chart_namespace: str = "kyma-system"
    """
    The namespace the chart is rendered and installed into.
    """

    field_manager: str = "chartops"
    """
    The field manager name used for server-side apply.
    """

    gateway: Literal["dynamic", "kubectl"] = "dynamic"
    """
    How to talk to the cluster: through the Kubernetes API client (`dynamic`) or by running `kubectl`.
    """

    cache_max_entries: int | None = None
    """
    Upper bound for the number of releases kept in the manifest cache. Unbounded if not set.
    """


@dataclass
class ProjectConfig:
    """
    Wrapper for the project configuration file.
    """

    FILENAME = "chartops-project.yaml"

    file: Path | None
    config: Project

    @staticmethod
    def load(file: Path | None = None, /) -> "ProjectConfig":
        """
        Load the project configuration from the given or the default configuration file. If the configuration file does
        not exist, a default project configuration is returned.
        """

        from databind.json import load as deser
        from yaml import safe_load

        if file is None:
            file = find_config_file(ProjectConfig.FILENAME, required=False)
        if file is None:
            return ProjectConfig(None, Project())

        logger.debug("Loading project configuration from '{}'", file)
        project = deser(safe_load(file.read_text()) or {}, Project, filename=str(file))

        if not project.chart_path.is_absolute():
            project.chart_path = file.parent / project.chart_path
        if not project.chart_path.exists():
            logger.warning("Chart path '{}' does not exist", project.chart_path)

        return ProjectConfig(file, project)
