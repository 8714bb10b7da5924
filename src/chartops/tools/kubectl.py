from dataclasses import dataclass
import json
import os
from pathlib import Path
import shlex
import subprocess
from tempfile import TemporaryDirectory
from typing import Any, TypedDict

import yaml
from loguru import logger

from chartops.context import Context, ContextCancelledError
from chartops.tools.types import Manifests


@dataclass
class KubectlError(Exception):
    statuscode: int
    stderr: str | None = None

    def __str__(self) -> str:
        message = f"Kubectl command failed with status code {self.statuscode}"
        if self.stderr:
            message += f": {self.stderr.strip()}"
        return message


class KubectlVersion(TypedDict):
    major: str
    minor: str
    gitVersion: str
    gitCommit: str
    gitTreeState: str
    buildDate: str
    goVersion: str
    compiler: str
    platform: str


class Kubectl:
    """
    Wrapper for interfacing with `kubectl`. Every command runs under a `Context`; the process is killed when the
    context is cancelled or expires.
    """

    POLL_INTERVAL_SECONDS = 0.1

    def __init__(self, context: str | None = None) -> None:
        """
        Args:
            context: The kubeconfig context to use. If not set, the current context is used.
        """

        self.env: dict[str, str] = {}
        self.context = context
        self.tempdir: TemporaryDirectory | None = None

    def __del__(self) -> None:
        if hasattr(self, "tempdir") and self.tempdir is not None:
            logger.warning("Kubectl object was not cleaned up properly")
            self.tempdir.cleanup()

    def __enter__(self) -> "Kubectl":
        return self

    def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self.tempdir is not None:
            self.tempdir.cleanup()
            self.tempdir = None

    def set_kubeconfig(self, kubeconfig: dict[str, Any] | str | Path) -> None:
        """
        Set the kubeconfig to use for `kubectl` commands.
        """

        if self.tempdir is None:
            self.tempdir = TemporaryDirectory()

        if isinstance(kubeconfig, Path):
            kubeconfig_path = kubeconfig
        else:
            kubeconfig_path = Path(self.tempdir.name) / "kubeconfig"
            with open(kubeconfig_path, "w") as f:
                if isinstance(kubeconfig, str):
                    f.write(kubeconfig)
                else:
                    yaml.safe_dump(kubeconfig, f)

        self.env["KUBECONFIG"] = str(kubeconfig_path)

    def _run(self, ctx: Context, args: list[str], input: str | None = None) -> str:
        """
        Run `kubectl` with the given arguments and return its standard output.

        Raises:
            KubectlError: If the command exits with a non-zero status code.
            ContextCancelledError: If *ctx* is cancelled or expires while the command is running.
        """

        ctx.check()

        command = ["kubectl", *args]
        if self.context is not None:
            command.extend(["--context", self.context])

        logger.debug("Running command: $ {command}", command=" ".join(map(shlex.quote, command)))
        proc = subprocess.Popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env={**os.environ, **self.env},
        )

        pending_input = input
        while True:
            try:
                stdout, stderr = proc.communicate(input=pending_input, timeout=self.POLL_INTERVAL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                pending_input = None
                if (reason := ctx.reason) is not None:
                    logger.debug("Killing kubectl (pid {}), context {}", proc.pid, reason)
                    proc.kill()
                    proc.communicate()
                    raise ContextCancelledError(reason)

        if proc.returncode:
            raise KubectlError(proc.returncode, stderr)
        return stdout

    def apply(
        self,
        ctx: Context,
        manifests: Manifests,
        namespace: str | None = None,
        force_conflicts: bool = False,
        server_side: bool = True,
        field_manager: str | None = None,
    ) -> None:
        """
        Apply the given manifests to the cluster.
        """

        args = ["apply", "-f", "-"]
        if namespace:
            args.extend(["--namespace", namespace])
        if server_side:
            args.append("--server-side")
        if field_manager:
            args.extend(["--field-manager", field_manager])
        if force_conflicts:
            args.append("--force-conflicts")

        self._run(ctx, args, input=yaml.safe_dump_all(manifests))

    def delete(self, ctx: Context, manifests: Manifests, namespace: str | None = None, wait: bool = False) -> None:
        """
        Delete the resources identified by the given manifests. Only `apiVersion`, `kind` and `metadata` are needed.
        Resources that do not exist are not an error.
        """

        args = ["delete", "-f", "-", "--ignore-not-found", f"--wait={str(wait).lower()}"]
        if namespace:
            args.extend(["--namespace", namespace])
        self._run(ctx, args, input=yaml.safe_dump_all(manifests))

    def version(self, ctx: Context | None = None) -> KubectlVersion:
        output = self._run(ctx or Context.background(), ["version", "-o", "json", "--client=true"])
        return json.loads(output)["clientVersion"]
