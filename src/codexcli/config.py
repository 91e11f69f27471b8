"""Configuration models and loaders for codexcli."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from codexcli.toolchain import default_system_python

CONFIG_FILE_NAMES: tuple[str, ...] = ("codexcli.yaml", "codexcli.yml")
DEFAULT_BASELINE_PACKAGES: list[str] = ["pip", "setuptools", "wheel"]
DEFAULT_TYPESCRIPT_PACKAGES: list[str] = ["typescript", "ts-node"]


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the AI backend.

    Attributes:
        provider: ``ollama`` (prompt piped to the CLI) or ``ollama-http``.
        model: Local model name.
        executable: CLI executable for the ``ollama`` provider.
        base_url: Server URL for the ``ollama-http`` provider.
        timeout_s: Request timeout in seconds.
        max_retries: Retries for transient HTTP failures.
    """

    provider: str = "ollama"
    model: str = "llama3.2"
    executable: str = "ollama"
    base_url: str = "http://localhost:11434"
    timeout_s: float = 300.0
    max_retries: int = 2


@dataclass(frozen=True)
class ExecutorConfig:
    """Configuration for running fragments."""

    timeout_s: int | None = None
    temp_stem: str = "temp_code"
    app_dir_name: str = "react-app"
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProvisioningConfig:
    """Configuration for runtime environment provisioning.

    Attributes:
        venv_dir: Virtual environment directory, relative to the working directory.
        system_python: Interpreter used to create the virtual environment.
        baseline_packages: Packages upgraded right after the environment is created.
        max_attempts: Attempts per baseline package upgrade.
        retry_delay_s: Delay between upgrade attempts.
        bootstrap_python: Try the platform package manager when no interpreter exists.
        typescript_packages: Packages installed before every TypeScript run.
    """

    venv_dir: str = "venv"
    system_python: str = field(default_factory=default_system_python)
    baseline_packages: list[str] = field(default_factory=lambda: list(DEFAULT_BASELINE_PACKAGES))
    max_attempts: int = 3
    retry_delay_s: float = 1.0
    bootstrap_python: bool = True
    typescript_packages: list[str] = field(
        default_factory=lambda: list(DEFAULT_TYPESCRIPT_PACKAGES)
    )


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration for the application.

    Attributes:
        workdir: Optional working directory for fragment execution.
        llm: Configuration for the AI backend.
        executor: Configuration for fragment execution.
        provisioning: Configuration for environment provisioning.
    """

    workdir: Path | None = None
    llm: LLMConfig = field(default_factory=lambda: LLMConfig())
    executor: ExecutorConfig = field(default_factory=lambda: ExecutorConfig())
    provisioning: ProvisioningConfig = field(default_factory=lambda: ProvisioningConfig())


def load_config(path: Path | None = None) -> AppConfig:
    """Load application configuration from disk.

    Args:
        path: Optional path to a configuration file or directory.

    Returns:
        Parsed AppConfig with defaults applied when no config exists.
    """

    config_path = _resolve_config_path(path)
    if config_path is None:
        return AppConfig()

    if config_path.suffix in {".yaml", ".yml"}:
        raw_data = _load_yaml(config_path)
    elif config_path.suffix == ".toml":
        raw_data = _load_toml(config_path)
    else:
        raise ValueError(f"Unsupported config file type: {config_path}")

    return _parse_app_config(raw_data, base_path=config_path.parent)


def config_to_dict(config: AppConfig) -> dict[str, Any]:
    """Serialize an AppConfig into a JSON-compatible dictionary."""

    return {
        "workdir": str(config.workdir) if config.workdir is not None else None,
        "llm": {
            "provider": config.llm.provider,
            "model": config.llm.model,
            "executable": config.llm.executable,
            "base_url": config.llm.base_url,
            "timeout_s": config.llm.timeout_s,
            "max_retries": config.llm.max_retries,
        },
        "executor": {
            "timeout_s": config.executor.timeout_s,
            "temp_stem": config.executor.temp_stem,
            "app_dir_name": config.executor.app_dir_name,
            "env": dict(config.executor.env),
        },
        "provisioning": {
            "venv_dir": config.provisioning.venv_dir,
            "system_python": config.provisioning.system_python,
            "baseline_packages": list(config.provisioning.baseline_packages),
            "max_attempts": config.provisioning.max_attempts,
            "retry_delay_s": config.provisioning.retry_delay_s,
            "bootstrap_python": config.provisioning.bootstrap_python,
            "typescript_packages": list(config.provisioning.typescript_packages),
        },
    }


def update_workdir(config: AppConfig, workdir: Path | None) -> AppConfig:
    """Return a config copy with an updated working directory."""

    return replace(config, workdir=workdir)


def update_model(config: AppConfig, model: str) -> AppConfig:
    """Return a config copy with an updated backend model."""

    return replace(config, llm=replace(config.llm, model=model))


def _resolve_config_path(path: Path | None) -> Path | None:
    candidate_paths: list[Path] = []
    if path is None:
        candidate_paths.extend(Path(name) for name in CONFIG_FILE_NAMES)
        candidate_paths.append(Path("pyproject.toml"))
    elif path.is_dir():
        candidate_paths.extend(path / name for name in CONFIG_FILE_NAMES)
        candidate_paths.append(path / "pyproject.toml")
    else:
        candidate_paths.append(path)

    for candidate in candidate_paths:
        if candidate.exists():
            return candidate
    return None


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get("codexcli", {})
        if not isinstance(tool_config, dict):
            raise ValueError("tool.codexcli must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("YAML configuration must be a mapping.")
    return data


def _parse_app_config(raw_data: dict[str, Any], base_path: Path) -> AppConfig:
    workdir: Path | None = None
    raw_workdir = _optional_str(raw_data.get("workdir"))
    if raw_workdir is not None:
        workdir = Path(raw_workdir)
        if not workdir.is_absolute():
            workdir = (base_path / workdir).resolve()

    return AppConfig(
        workdir=workdir,
        llm=_parse_llm_config(raw_data.get("llm", {})),
        executor=_parse_executor_config(raw_data.get("executor", {})),
        provisioning=_parse_provisioning_config(raw_data.get("provisioning", {})),
    )


def _parse_llm_config(raw: Any) -> LLMConfig:
    if not isinstance(raw, dict):
        return LLMConfig()
    defaults = LLMConfig()
    return LLMConfig(
        provider=str(raw.get("provider", defaults.provider)),
        model=str(raw.get("model", defaults.model)),
        executable=str(raw.get("executable", defaults.executable)),
        base_url=str(raw.get("base_url", defaults.base_url)),
        timeout_s=float(raw.get("timeout_s", defaults.timeout_s)),
        max_retries=int(raw.get("max_retries", defaults.max_retries)),
    )


def _parse_executor_config(raw: Any) -> ExecutorConfig:
    if not isinstance(raw, dict):
        return ExecutorConfig()
    env = raw.get("env", {})
    env_map: dict[str, str] = {}
    if isinstance(env, dict):
        env_map = {str(key): str(value) for key, value in env.items()}
    defaults = ExecutorConfig()
    return ExecutorConfig(
        timeout_s=_optional_int(raw.get("timeout_s")),
        temp_stem=str(raw.get("temp_stem", defaults.temp_stem)),
        app_dir_name=str(raw.get("app_dir_name", defaults.app_dir_name)),
        env=env_map,
    )


def _parse_provisioning_config(raw: Any) -> ProvisioningConfig:
    if not isinstance(raw, dict):
        return ProvisioningConfig()
    defaults = ProvisioningConfig()
    return ProvisioningConfig(
        venv_dir=str(raw.get("venv_dir", defaults.venv_dir)),
        system_python=str(raw.get("system_python", defaults.system_python)),
        baseline_packages=_parse_str_list(
            raw.get("baseline_packages"), defaults.baseline_packages, "baseline_packages"
        ),
        max_attempts=int(raw.get("max_attempts", defaults.max_attempts)),
        retry_delay_s=float(raw.get("retry_delay_s", defaults.retry_delay_s)),
        bootstrap_python=bool(raw.get("bootstrap_python", defaults.bootstrap_python)),
        typescript_packages=_parse_str_list(
            raw.get("typescript_packages"), defaults.typescript_packages, "typescript_packages"
        ),
    )


def _parse_str_list(raw: Any, default: list[str], name: str) -> list[str]:
    if raw is None:
        return list(default)
    if not isinstance(raw, list):
        raise ValueError(f"{name} must be a list of strings.")
    return [str(item) for item in raw]


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)
