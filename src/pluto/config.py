"""Terminal configuration: defaults, deep merge and lazy command evaluation"""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exception import ConfigurationError, EnvironmentError

logger = logging.getLogger(__name__)

# Literal command line, argv list, or a zero-argument producer evaluated at use time
ShellCommand = Union[str, List[str], Callable[[], Any]]


def default_shell() -> str:
    """Resolve the default shell from the environment

    Evaluated lazily each time a terminal is spawned, so a $SHELL change
    between setup and open is observed.

    Returns:
        Value of $SHELL

    Raises:
        EnvironmentError: If $SHELL is unset or empty
    """
    shell = os.environ.get("SHELL")
    if not shell:
        raise EnvironmentError(
            "$SHELL is not present! Please provide a shell (`cmd`) to use."
        )
    return shell


DEFAULTS: Dict[str, Any] = {
    "ft": "Pluto",
    "cmd": default_shell,
    "border": "single",
    "auto_close": True,
    "hl": "Normal",
    "blend": 0,
    "clear_env": False,
    "env": None,
    "dimensions": {
        "height": 0.8,
        "width": 0.8,
        "x": 0.5,
        "y": 0.5,
    },
    "task": {
        "command": "gcc",
        "args": [],
        "output": None,
    },
}


# ==================== Models ====================


class Dimensions(BaseModel):
    """Proportional surface dimensions

    Ratios are expected in (0, 1] but deliberately not validated; see
    pluto.geometry.calculate_geometry.
    """
    model_config = ConfigDict(extra="forbid")

    height: float = 0.8
    width: float = 0.8
    x: float = 0.5
    y: float = 0.5


class TaskConfig(BaseModel):
    """Build task used by the compile-and-run pipeline"""
    model_config = ConfigDict(extra="forbid")

    command: str = "gcc"
    args: List[str] = Field(default_factory=list)
    output: Optional[str] = Field(
        default=None,
        description="Explicit output file; derived from the source name when unset"
    )


class TerminalConfig(BaseModel):
    """Resolved terminal configuration"""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    ft: str = "Pluto"
    cmd: ShellCommand = default_shell
    border: str = "single"
    auto_close: bool = True
    hl: str = "Normal"
    blend: int = Field(default=0, ge=0, le=100)
    clear_env: bool = False
    env: Optional[Dict[str, str]] = None
    dimensions: Dimensions = Field(default_factory=Dimensions)
    task: TaskConfig = Field(default_factory=TaskConfig)

    on_stdout: Optional[Callable[..., Any]] = None
    on_stderr: Optional[Callable[..., Any]] = None
    on_exit: Optional[Callable[..., Any]] = None


# ==================== Merge & Resolution ====================


def deep_merge(defaults: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge overrides onto defaults, last write wins

    Mappings are merged key by key (recursively), lists and scalars are
    replaced wholesale. Neither input is mutated.

    Args:
        defaults: Base configuration
        overrides: User overrides

    Returns:
        New merged dict
    """
    merged = {key: _copy_value(value) for key, value in defaults.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = _copy_value(value)
    return merged


def _copy_value(value: Any) -> Any:
    # Containers are copied, callables and scalars are shared as-is
    if isinstance(value, Mapping):
        return {key: _copy_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy_value(item) for item in value]
    return value


def _as_mapping(value: Any) -> Any:
    # Unlike model_dump(), keeps callables and nested values by identity
    if isinstance(value, BaseModel):
        return {name: _as_mapping(getattr(value, name)) for name in type(value).model_fields}
    return value


def resolve(
    defaults: Union[Mapping[str, Any], TerminalConfig],
    overrides: Optional[Mapping[str, Any]] = None
) -> TerminalConfig:
    """Merge overrides onto defaults and validate the result

    Args:
        defaults: Base configuration mapping or an already resolved TerminalConfig
        overrides: User overrides (None keeps the defaults)

    Returns:
        Validated TerminalConfig

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    merged = deep_merge(_as_mapping(defaults), overrides or {})
    try:
        return TerminalConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid terminal configuration: {e}") from e


def evaluate_command(command: Any) -> Any:
    """Evaluate a literal-or-producer command at its point of use

    Args:
        command: Literal string, sequence of strings, or zero-argument callable

    Returns:
        The literal value; sequences are returned as a list of strings
    """
    value = command() if callable(command) else command
    if isinstance(value, (list, tuple)):
        return [str(part) for part in value]
    return value


def resolve_shell_command(command: ShellCommand) -> Union[str, List[str]]:
    """Evaluate the shell command used to spawn the terminal

    Args:
        command: Configured shell command

    Returns:
        Non-empty command string or argv list

    Raises:
        EnvironmentError: If the default shell producer finds no $SHELL
        ConfigurationError: If the command evaluates to nothing
    """
    value = evaluate_command(command)
    if isinstance(value, list):
        if not value or not value[0].strip():
            raise ConfigurationError("Shell command resolved to an empty argv")
        return value
    if value is None or not str(value).strip():
        raise ConfigurationError("Shell command resolved to an empty string")
    return str(value)


def load_config(path: Path | str) -> Dict[str, Any]:
    """Load user overrides from a TOML file

    Args:
        path: Path to the TOML file

    Returns:
        Override mapping suitable for resolve()/setup()

    Raises:
        ConfigurationError: If the file is missing or not valid TOML
    """
    import tomli

    config_file = Path(path)
    try:
        with open(config_file, "rb") as f:
            data = tomli.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {config_file}") from e
    except tomli.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_file}: {e}") from e

    logger.debug(f"Loaded config overrides from {config_file}: keys={sorted(data)}")
    return data
