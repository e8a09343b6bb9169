"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cudadiag.core import osinfo
from cudadiag.core.base import BaseConfig, BaseState
from cudadiag.core.log import Logger
from cudadiag.core.result import BuildResult, SectionReport
from cudadiag.core.yaml_settings import (
    APP_NAME,
    YamlWithIncludesSettingsSource,
)

# ============================================================
# TEMPLATE SUBSTITUTION NAMESPACE
# ============================================================

# Modules usable in YAML templates, e.g. {platformdirs.user_log_dir}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class KeyringConfig(BaseConfig):
    """CUDA archive keyring under inspection."""

    path: Path = Field(
        default=Path("/usr/share/keyrings/cuda-archive-keyring.gpg"),
        description="Keyring file installed by the cuda-keyring package",
    )
    expected_key_id: str = Field(
        default="A4B469963BF863CC",
        description="Long (16 hex digit) id of the current signing key",
    )
    version: str = Field(
        default="1.1-1",
        description="cuda-keyring package version installed by builds",
    )
    search_terms: list[str] = Field(
        default_factory=lambda: ["cuda", "nvidia"],
        description=(
            "Name fragments used to find related keyrings, APT "
            "sources and legacy keys"
        ),
    )


class RepoConfig(BaseConfig):
    """Remote CUDA APT repository."""

    url: str | None = Field(
        default=None,
        description=(
            "Full repository URL. If unset, derived from base_url, "
            "/etc/os-release and the machine architecture"
        ),
    )
    base_url: str = Field(
        default="https://developer.download.nvidia.com/compute/cuda/repos",
        description="Root of NVIDIA's per-distro repositories",
    )
    fallback_distro: str = Field(
        default="ubuntu2204",
        description="Distro directory used when os-release is unusable",
    )
    fallback_arch: str = Field(
        default="x86_64",
        description="Architecture directory used for unknown machines",
    )
    release_file: str = Field(
        default="InRelease",
        description="Signed release index fetched from the repository",
    )
    connect_timeout: int = Field(
        default=10,
        description="Connect timeout in seconds for HTTP clients",
    )
    download_timeout: int = Field(
        default=60,
        description="Upper bound in seconds for the release download",
    )
    preview_lines: int = Field(
        default=20,
        description="Lines of the release index echoed in the report",
    )
    http_clients: list[str] = Field(
        default_factory=lambda: ["curl", "wget"],
        description=(
            "HTTP client tools in order of preference; each needs "
            "commands.http.<name>_probe and <name>_fetch templates"
        ),
    )

    def resolve_url(
        self, os_release: dict[str, str], machine: str
    ) -> str:
        """Return the configured URL or derive one for this host."""
        if self.url:
            return self.url.rstrip("/")
        distro = osinfo.repo_distro(os_release) or self.fallback_distro
        arch = osinfo.repo_arch(machine) or self.fallback_arch
        return f"{self.base_url.rstrip('/')}/{distro}/{arch}"


class AptConfig(BaseConfig):
    """APT source configuration locations."""

    sources_dir: Path = Field(
        default=Path("/etc/apt/sources.list.d"),
        description="Directory of per-repository source files",
    )
    sources_list: Path = Field(
        default=Path("/etc/apt/sources.list"),
        description="Legacy single sources file",
    )
    sources_list_pattern: str = Field(
        default="cuda",
        description=(
            "Case-insensitive regex for CUDA lines in sources_list, "
            "used when sources_dir has no matching file"
        ),
    )
    signed_by_directive: str = Field(
        default="signed-by",
        description="Directive that pins a source to one keyring",
    )
    legacy_context_lines: int = Field(
        default=5,
        description="Lines shown after each legacy apt-key match",
    )


class SystemConfig(BaseConfig):
    """Host facts shown in the report."""

    os_release: Path = Field(
        default=Path("/etc/os-release"),
        description="OS release metadata file",
    )


class BuildConfig(BaseConfig):
    """Container build performed by the driver."""

    engine: str = Field(
        default="docker",
        description="Container engine binary (docker, podman, ...)",
    )
    image_tag: str = Field(
        default="cuda-debug-temp",
        description="Tag given to the diagnostic image",
    )
    dockerfile: Path = Field(
        default=Path("docker/Dockerfile.debug-cuda"),
        description="Dockerfile layering the keyring onto the base image",
    )
    context: Path = Field(
        default=Path("."),
        description="Build context directory (the project checkout)",
    )
    log_file: Path = Field(
        default=Path("/tmp/cuda-debug-build.log"),
        description="Where the combined build output is saved",
    )
    timeout: int | None = Field(
        default=None,
        description="Build timeout in seconds (None waits forever)",
    )
    diagnose_command: str = Field(
        default="cudadiag diagnose",
        description="Command that runs the checklist inside the image",
    )
    propagate_exit_code: bool = Field(
        default=False,
        description=(
            "Exit with the build's code instead of 0 when the build "
            "fails"
        ),
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance"
    )
    keyring: KeyringConfig = Field(
        default_factory=KeyringConfig,
        description="Keyring file and expected signing key",
    )
    repo: RepoConfig = Field(
        default_factory=RepoConfig,
        description="Remote CUDA repository settings",
    )
    apt: AptConfig = Field(
        default_factory=AptConfig,
        description="APT source locations",
    )
    system: SystemConfig = Field(
        default_factory=SystemConfig,
        description="Host information sources",
    )
    build: BuildConfig = Field(
        default_factory=BuildConfig,
        description="Container build settings for the driver",
    )

    run_name: str = Field(
        default=APP_NAME,
        description="Name used for log paths and the telemetry service",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / APP_NAME
        ),
        description=(
            "Root directory for log files "
            "(supports {platformdirs.*} templates)"
        ),
    )
    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description=(
            "External command templates by tool (gpg, http, legacy, "
            "container)"
        ),
    )

    @model_validator(mode='after')
    def _setup_logger(self) -> Config:
        """Install the global logger once configuration is loaded."""
        from cudadiag.core.log import setup_logger
        from cudadiag.core.yaml_settings import _cleanup_bootstrap_logger

        if self.logger is None:
            self.logger = Logger()

        setup_logger(
            log_root=self.log_root,
            run_name=self.run_name,
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )
        _cleanup_bootstrap_logger()
        return self

    def command(self, tool: str, name: str, **params: str) -> str:
        """Render a command template with shell-quoted parameters.

        Raises:
            KeyError: If commands.<tool>.<name> is not configured
        """
        import shlex

        template = self.commands[tool][name]
        return template.format(
            **{key: shlex.quote(str(value)) for key, value in params.items()}
        )

    def close(self):
        """Close the global logger as well as child sections."""
        from cudadiag.core.log import logger
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during workflow execution)
# ============================================================

class DiagnoseState(BaseState):
    """Checklist runtime state."""

    sections: list[SectionReport] = Field(
        default_factory=list,
        description="Reports of the checks run so far, in order",
    )
    status: str = Field(
        default="pending",
        description="Workflow status: pending, running, complete",
    )


class BuildState(BaseState):
    """Driver runtime state."""

    base_image: str = Field(
        default="",
        description="Base image requested on the command line",
    )
    keyring_version: str = Field(
        default="",
        description="Keyring version passed to the build",
    )
    result: BuildResult | None = Field(
        default=None,
        description="Outcome of the container build",
    )
    exit_code: int = Field(
        default=0,
        description="Exit code the driver will return",
    )
    status: str = Field(
        default="pending",
        description="Workflow status: pending, running, complete",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Runtime(BaseModel):
    """Runtime state grouped by workflow."""

    diagnose: DiagnoseState = Field(
        default_factory=DiagnoseState,
        description="Checklist runtime state",
    )
    build: BuildState = Field(
        default_factory=BuildState,
        description="Driver runtime state",
    )


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Complete application state: configuration and runtime.

    This is the object every workflow node receives. Being a
    BaseSettings, it loads from YAML files, .env, environment
    variables and CLI arguments, validating everything on load.
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during workflow execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="cudadiag.yaml",
        env_file=".env",
        env_prefix="CUDADIAG_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority, highest first: init args, YAML layers, .env,
        environment, file secrets."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> State:
        """Replace {config.*} and {platformdirs.*} templates in every
        string and Path, recursively."""
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            new = self._substitute_string(value)
            return value if new == value else new
        if isinstance(value, Path):
            new = self._substitute_string(str(value))
            return value if new == str(value) else Path(new)
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Replace {dotted.path} templates with resolved values.

        Unresolvable references (runtime placeholders such as
        {keyring} in command templates) are left unchanged.

        Examples:
            "{config.build.image_tag}" → "cuda-debug-temp"
            "{platformdirs.user_state_dir}"
            → "~/.local/state/cudadiag"
        """
        def replace_template(match):
            parts = match.group(1).split(".")
            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            elif parts[0] in ("config", "runtime"):
                obj = self
            else:
                return match.group(0)

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    obj = obj(APP_NAME, appauthor=False)
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([A-Za-z._]+)\}', replace_template, value)


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
