"""
Plugin callback protocol.

A callback is an executable script at {plugin_dir}/bin/{name}. Every callback
is optional: a missing script is reported as NoCallbackError, which callers
treat as "the plugin does not implement this hook" rather than a failure.

Example:

    out = io.StringIO()
    try:
        run_callback(plugin, Callback.LIST_BIN_PATHS, [], {}, out, sys.stderr)
    except NoCallbackError:
        dirs = ["bin"]
    else:
        dirs = out.getvalue().split()
"""

import logging
import os
import stat
import subprocess
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence, Union

from asdf_vm.lib.errors import CallbackExecutionError, NoCallbackError
from asdf_vm.models.plugin import Plugin

logger = logging.getLogger(__name__)

# Runs the script directly so its shebang is honoured; bash falls back to
# interpreting it as a shell script when it has none.
_LAUNCHER = ["bash", "-c", '"$0" "$@"']

_EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class Callback(str, Enum):
    """Callbacks with a defined meaning to asdf."""

    LIST_ALL = "list-all"
    DOWNLOAD = "download"
    INSTALL = "install"
    LIST_BIN_PATHS = "list-bin-paths"
    EXEC_ENV = "exec-env"
    LATEST_STABLE = "latest-stable"
    HELP_OVERVIEW = "help.overview"
    POST_PLUGIN_ADD = "post-plugin-add"
    POST_PLUGIN_UPDATE = "post-plugin-update"
    PRE_PLUGIN_REMOVE = "pre-plugin-remove"


class Sink(Protocol):
    def write(self, s: str, /) -> object: ...


def decode_output(raw: bytes) -> str:
    """Decode child output as UTF-8 without newline translation.

    Invalid bytes become U+FFFD instead of aborting the decode.
    """
    return raw.decode("utf-8", errors="replace")


def _callback_name(name: Union[str, Callback]) -> str:
    return name.value if isinstance(name, Callback) else name


def find_callback(plugin: Plugin, name: Union[str, Callback]) -> Optional[Path]:
    """Return the script implementing a callback, or None if the plugin has none."""
    script = plugin.bin_dir / _callback_name(name)
    try:
        st = script.stat()
    except OSError:
        return None

    if not stat.S_ISREG(st.st_mode) or not st.st_mode & _EXECUTE_BITS:
        return None
    return script


def has_callback(plugin: Plugin, name: Union[str, Callback]) -> bool:
    return find_callback(plugin, name) is not None


def run_callback(
    plugin: Plugin,
    name: Union[str, Callback],
    args: Sequence[str],
    env: Mapping[str, str],
    stdout: Sink,
    stderr: Sink,
    base_env: Optional[Mapping[str, str]] = None,
) -> None:
    """Run a plugin callback to completion.

    Args:
        plugin: Plugin owning the callback
        name: Callback name (bin/ script name)
        args: Positional arguments passed to the script, in order
        env: Variables overlaid on base_env for the child process
        stdout: Receives everything the script wrote to stdout
        stderr: Receives everything the script wrote to stderr
        base_env: Environment to start from, defaults to os.environ

    Raises:
        NoCallbackError: The plugin has no such executable script
        CallbackExecutionError: The script exited non-zero or failed to launch.
            Output captured before the failure has already been written to
            the sinks.
    """
    callback_name = _callback_name(name)
    script = find_callback(plugin, callback_name)
    if script is None:
        raise NoCallbackError(plugin.name, callback_name)

    child_env = dict(os.environ if base_env is None else base_env)
    child_env.update(env)

    argv = [*_LAUNCHER, str(script), *args]
    logger.debug(f"Running callback {callback_name} for plugin {plugin.name}: {list(args)}")

    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            env=child_env,
        )
    except OSError as e:
        raise CallbackExecutionError(plugin.name, callback_name, cause=e) from e

    if result.stdout:
        stdout.write(decode_output(result.stdout))
    if result.stderr:
        stderr.write(decode_output(result.stderr))

    if result.returncode != 0:
        logger.debug(
            f"Callback {callback_name} for plugin {plugin.name} exited {result.returncode}"
        )
        raise CallbackExecutionError(plugin.name, callback_name, result.returncode)
