from dataclasses import dataclass
from pathlib import Path
import shlex
import subprocess
from tempfile import TemporaryDirectory
from textwrap import indent

from loguru import logger
import yaml

from chartops.chart import CREATE_NAMESPACE_FLAG, ChartFlags, ReleaseIdentity
from chartops.renderer import ManifestRenderError, ManifestRenderer


@dataclass
class HelmChartRenderer(ManifestRenderer):
    """
    Renders a local Helm chart with `helm template`.
    """

    chart_path: Path
    """ Path to the chart directory or packaged chart. """

    kube_version: str | None = None
    """
    The Kubernetes version to render for. Helm uses it for capability checks, such as picking the right apiVersion for
    Ingress resources. If not set, Helm's built-in default is used.
    """

    helm: str = "helm"
    """ The Helm executable. """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.chart_path})"

    def render(self, release: ReleaseIdentity, flags: ChartFlags) -> str:
        if not self.chart_path.exists():
            raise ManifestRenderError(self, f"Chart path '{self.chart_path}' not found")

        namespace = flags.namespace or release.namespace

        with TemporaryDirectory() as tmp:
            values_file = Path(tmp) / "values.yaml"
            values_file.write_text(yaml.safe_dump(flags.set_flags))

            command = [
                self.helm,
                "template",
                "--skip-tests",
                "--include-crds",
                "--values",
                str(values_file),
                "--namespace",
                namespace,
            ]
            if self.kube_version:
                command.extend(["--kube-version", self.kube_version])
            command.extend([release.name, str(self.chart_path)])

            logger.debug("Rendering manifest with Helm: $ {}", " ".join(map(shlex.quote, command)))
            try:
                result = subprocess.run(command, capture_output=True, check=True, text=True)
            except (OSError, subprocess.CalledProcessError) as e:
                prefix = "    "
                stderr = getattr(e, "stderr", None) or ""
                raise ManifestRenderError(
                    self,
                    f"Failed to render manifest using Helm.\n{indent(str(e), prefix)}\n"
                    f"stderr:\n{indent(stderr, prefix)}",
                ) from e

        body = result.stdout
        if flags.config_flags.get(CREATE_NAMESPACE_FLAG):
            namespace_doc = yaml.safe_dump({"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": namespace}})
            body = f"{namespace_doc}---\n{body}"

        return body
