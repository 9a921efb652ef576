"""
Toolchain bootstrapper for the East development environment.

Makes sure the runtime-version manager (nvm) and the package manager (uv)
exist on the host, installing them from their pinned HTTPS installers only
when absent, then selects the pinned Node.js runtime for later builds.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from eastdev.build.errors import ToolchainMissing
from eastdev.core.utils import has_command, last_line, log, run_cmd

MANIFEST_PATH = Path(__file__).with_name("toolchain.yaml")


# =============================================================================
# Manifest
# =============================================================================


@dataclass(frozen=True)
class ToolSpec:
    """One installable tool and how to detect it."""

    name: str
    installer: str
    shell: str = "sh"
    command: Optional[str] = None
    marker: Optional[str] = None
    home: Optional[str] = None
    bin_dir: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolSpec":
        return cls(
            name=data["name"],
            installer=data["installer"],
            shell=data.get("shell", "sh"),
            command=data.get("command"),
            marker=data.get("marker"),
            home=data.get("home"),
            bin_dir=data.get("bin_dir"),
        )


@dataclass(frozen=True)
class ToolchainManifest:
    host_commands: tuple[str, ...]
    version_manager: ToolSpec
    package_manager: ToolSpec
    runtime_name: str
    runtime_version: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolchainManifest":
        runtime = data.get("runtime", {})
        return cls(
            host_commands=tuple(data.get("host_commands", [])),
            version_manager=ToolSpec.from_dict(data["version_manager"]),
            package_manager=ToolSpec.from_dict(data["package_manager"]),
            runtime_name=runtime.get("name", "node"),
            runtime_version=str(runtime.get("version", "")),
        )


@lru_cache(maxsize=1)
def load_manifest() -> ToolchainManifest:
    """Load the packaged toolchain manifest.

    Result is cached for the lifetime of the process.
    """
    with open(MANIFEST_PATH, "r", encoding="utf-8") as f:
        return ToolchainManifest.from_dict(yaml.safe_load(f))


# =============================================================================
# Bootstrapper
# =============================================================================


@dataclass
class ToolchainState:
    version_manager: bool = False
    package_manager: bool = False
    runtime_version: Optional[str] = None
    runtime_bin: Optional[Path] = None
    installed: list[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.version_manager and self.package_manager


class Toolchain:
    """Checks for and installs the toolchain; owns the build environment."""

    def __init__(
        self,
        manifest: Optional[ToolchainManifest] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.manifest = manifest or load_manifest()
        self.env: dict[str, str] = dict(os.environ if env is None else env)
        self.state = ToolchainState()

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    @property
    def nvm_dir(self) -> Path:
        configured = self.env.get("NVM_DIR")
        if configured:
            return Path(configured).expanduser()
        return self._home_path(self.manifest.version_manager.home or "~/.nvm")

    def _home_path(self, raw: str) -> Path:
        home = self.env.get("HOME")
        if raw.startswith("~") and home:
            return Path(home) / raw[2:]
        return Path(raw).expanduser()

    def _expand(self, raw: str) -> Path:
        return self._home_path(raw.replace("$NVM_DIR", str(self.nvm_dir)))

    def _prepend_path(self, directory: Path) -> None:
        current = self.env.get("PATH", "")
        entries = current.split(os.pathsep) if current else []
        if str(directory) not in entries:
            self.env["PATH"] = os.pathsep.join([str(directory), *entries])

    # -------------------------------------------------------------------------
    # Detection
    # -------------------------------------------------------------------------

    def missing_host_commands(self) -> list[str]:
        path = self.env.get("PATH")
        return [cmd for cmd in self.manifest.host_commands if not has_command(cmd, path=path)]

    def version_manager_present(self) -> bool:
        marker = self.manifest.version_manager.marker or "$NVM_DIR/nvm.sh"
        return self._expand(marker).is_file()

    def package_manager_present(self) -> bool:
        tool = self.manifest.package_manager
        command = tool.command or tool.name
        if has_command(command, path=self.env.get("PATH")):
            return True
        if tool.bin_dir and (self._expand(tool.bin_dir) / command).exists():
            # Installed but the shell profile has not been reloaded yet
            self._prepend_path(self._expand(tool.bin_dir))
            return True
        return False

    # -------------------------------------------------------------------------
    # Installation
    # -------------------------------------------------------------------------

    def _install(self, tool: ToolSpec) -> None:
        if not tool.installer.startswith("https://"):
            raise ToolchainMissing(f"Refusing non-HTTPS installer for {tool.name}: {tool.installer}")

        log.info(f"Installing {tool.name}...")
        script = (
            "set -o pipefail; "
            f"curl --proto '=https' --tlsv1.2 -fsSL {shlex.quote(tool.installer)} | {tool.shell}"
        )
        result = run_cmd(["bash", "-c", script], env=self.env, check=False)
        if result.returncode != 0:
            raise ToolchainMissing(f"{tool.name} installation failed (exit {result.returncode})")
        self.state.installed.append(tool.name)

    def _ensure_version_manager(self) -> None:
        tool = self.manifest.version_manager
        if self.version_manager_present():
            log.success(f"{tool.name} already installed")
        else:
            self._install(tool)
            if not self.version_manager_present():
                raise ToolchainMissing(f"{tool.name} not found after installation")
            log.success(f"{tool.name} installed")
        self.env.setdefault("NVM_DIR", str(self.nvm_dir))
        self.state.version_manager = True

    def _ensure_package_manager(self) -> None:
        tool = self.manifest.package_manager
        if self.package_manager_present():
            log.success(f"{tool.name} already installed")
        else:
            self._install(tool)
            if tool.bin_dir:
                self._prepend_path(self._expand(tool.bin_dir))
            if not self.package_manager_present():
                raise ToolchainMissing(f"{tool.name} not found after installation")
            log.success(f"{tool.name} installed")
        self.state.package_manager = True

    def _select_runtime(self) -> None:
        version = self.manifest.runtime_version
        if not version:
            return
        nvm_sh = self._expand(self.manifest.version_manager.marker or "$NVM_DIR/nvm.sh")
        script = (
            f". {shlex.quote(str(nvm_sh))} && "
            f"nvm install {shlex.quote(version)} >/dev/null && "
            f"nvm which {shlex.quote(version)}"
        )
        log.info(f"Selecting {self.manifest.runtime_name} {version}...")
        result = run_cmd(["bash", "-c", script], capture=True, check=False, env=self.env)
        binary = last_line(result.stdout)
        if result.returncode != 0 or not binary:
            detail = last_line(result.stderr) or f"exit {result.returncode}"
            raise ToolchainMissing(f"Could not install {self.manifest.runtime_name} {version}: {detail}")

        runtime_bin = Path(binary).parent
        self._prepend_path(runtime_bin)
        self.state.runtime_version = version
        self.state.runtime_bin = runtime_bin
        log.success(f"{self.manifest.runtime_name} {version} selected ({binary})")

    def ensure(self) -> ToolchainState:
        """Ensure host commands, version manager, package manager and runtime.

        Raises:
            ToolchainMissing: any component is absent and cannot be installed.
        """
        missing = self.missing_host_commands()
        if missing:
            raise ToolchainMissing(
                f"Missing required commands: {' '.join(missing)} "
                f"(install them with your system package manager)"
            )
        log.success(f"Required commands found ({', '.join(self.manifest.host_commands)})")

        self._ensure_version_manager()
        self._ensure_package_manager()
        self._select_runtime()
        return self.state

    def runtime_env(self) -> dict[str, str]:
        """Environment for build commands, with the selected runtime on PATH."""
        return dict(self.env)


def ensure_toolchain(toolchain: Optional[Toolchain] = None) -> ToolchainState:
    """Ensure the toolchain before any repository is touched.

    Raises:
        ToolchainMissing: propagated from ``Toolchain.ensure``; fatal in every mode.
    """
    state = (toolchain or Toolchain()).ensure()
    if state.installed:
        log.info(f"Installed this run: {', '.join(state.installed)}")
    else:
        log.dim("Toolchain already present, nothing installed")
    return state
