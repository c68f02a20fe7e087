from __future__ import annotations

import ast
import importlib.machinery
import importlib.util
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from types import ModuleType

log = logging.getLogger(__name__)

CONFIG_NAME = ".amcachecfg.py"

# Settings that can be set in a config file, with their defaults
DEFAULTS = {
    "RECOVER_DELETED": False,
    "SKIP_TRANSACTION_LOGS": False,
    "INCLUDE_ASSOCIATED": False,
    "ALLOWLIST": None,
    "DENYLIST": None,
}

ConfigValue = Union[str, int, bool, None]


def load(paths: list[Path | str] | Path | str | None) -> ModuleType:
    """Load the configuration for the given hive path(s).

    The config file is searched for next to the given path(s) and in their parent directories. Settings that
    are not set in the config file, or when there is no config file, have their default value.
    """

    if isinstance(paths, (Path, str)):
        paths = [paths]

    config_spec = importlib.machinery.ModuleSpec("config", None)
    config = importlib.util.module_from_spec(config_spec)
    config.__dict__.update(DEFAULTS)

    if config_file := _find_config_file(paths):
        log.debug("Loading config file %s", config_file)
        config.__dict__.update(_parse_ast(config_file.read_bytes()))

    return config


def _parse_ast(code: bytes | str) -> dict[str, ConfigValue]:
    # Only allow basic value assignments, a config file is never executed
    obj = {}

    module = ast.parse(code)
    if not isinstance(module, ast.Module):
        log.debug("Config did not parse to a module AST -- skipping")
        return obj

    for statement in module.body:
        if (
            not isinstance(statement, ast.Assign)
            or len(statement.targets) != 1
            or not isinstance(statement.value, ast.Constant)
        ):
            log.debug("Skipping non-constant assignment")
            continue

        target = statement.targets[0]
        if not isinstance(target, ast.Name) or not isinstance(target.ctx, ast.Store):
            log.debug("Skipping non-name assignment store")
            continue

        if target.id not in DEFAULTS:
            log.warning("Unknown setting in config file: %s", target.id)
            continue

        obj[target.id] = statement.value.value

    return obj


def _find_config_file(paths: list[Path | str] | None) -> Path | None:
    """Find a config file for any of the given path(s) and return it.

    Parts of a path are allowed to not exist, and the last part may be a file name, e.g. the hive itself.
    The root directory ('/') is never searched.
    """

    if not paths:
        return None

    config_file = None

    for path in paths:
        if not path:
            continue

        cur_path = Path(path).absolute()

        # Look for a config file in the provided path or its parent directories until found
        while not config_file and cur_path.name != "":
            cur_config = cur_path.joinpath(CONFIG_NAME)
            if cur_config.is_file():
                config_file = cur_config
            cur_path = cur_path.parent

        if config_file:
            break

    return config_file
