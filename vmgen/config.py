"""vmgen/config.py — target-language names used by the emitters.

The emitted fragments are spliced into hand-maintained templates, so the
identifiers they reference (the machine-state variables, the step function,
the bug reporter, ...) must match what the template defines. The defaults
below match the stock VM template; a YAML file can override any of them::

    stack: stack
    environment: env
    accessor_prefix: get_
    indent: "  "
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from vmgen.errors import ConfigError, SourceSpan, VmgenErrorCodes

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratorConfig:
    """Names and layout shared by every emitter in one run."""

    # VM machine state
    stack: str = "stack"
    environment: str = "env"
    code: str = "code"
    dump: str = "dump"
    vm_exec: str = "exec"
    result: str = "ret"

    # Typed-parameter conversion
    accessor_prefix: str = "get_"

    # Helpers referenced from generated code
    transform_primitive: str = "transform_primitive"
    vm_reducef: str = "exec_application"
    interp_reducef: str = "reduce_beta_list"
    interpret: str = "interpret"
    bug_reporter: str = "report_bug_vm"

    # Type names
    instruction_type: str = "instruction"
    ast_type: str = "abstract_tree"

    # One level of indentation in emitted text
    indent: str = "  "

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], source: str = ""
    ) -> "GeneratorConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        if not isinstance(data, Mapping):
            raise ConfigError(
                f"configuration must be a mapping, got {type(data).__name__}",
                span=SourceSpan(file=source),
            )
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(str(k) for k in data if k not in known)
        if unknown:
            raise ConfigError(
                f"unknown configuration key(s): {', '.join(unknown)}",
                code=VmgenErrorCodes.UNKNOWN_CONFIG_KEY,
                span=SourceSpan(file=source),
            ).with_hint(f"valid keys: {', '.join(sorted(known))}")
        for key, value in data.items():
            if not isinstance(value, str):
                raise ConfigError(
                    f"configuration key '{key}' must be a string",
                    span=SourceSpan(file=source),
                )
        return cls(**dict(data))


def load_config(path: Union[str, Path]) -> GeneratorConfig:
    """Read a ``GeneratorConfig`` from a YAML file.

    An empty file yields the defaults.
    """
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(
            f"cannot read configuration: {exc.strerror or exc}",
            span=SourceSpan(file=str(p)),
            cause=exc,
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"malformed configuration: {exc}",
            span=SourceSpan(file=str(p)),
            cause=exc,
        ) from exc

    if data is None:
        _log.debug("empty configuration %s, using defaults", p)
        return GeneratorConfig()
    config = GeneratorConfig.from_mapping(data, source=str(p))
    _log.info("loaded configuration from %s", p)
    return config


DEFAULT_CONFIG = GeneratorConfig()

__all__ = ["GeneratorConfig", "load_config", "DEFAULT_CONFIG"]
