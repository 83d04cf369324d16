"""
Plugin registry.

Plugins are git clones under {data_dir}/plugins/{name}. The registry adds,
lists, removes and updates them. Names are validated before anything
touches the filesystem, so a name can never escape the plugins directory.
"""

import logging
import re
import shutil
import sys
from pathlib import Path
from typing import Optional

from asdf_vm.config import Settings
from asdf_vm.core import data, git
from asdf_vm.core.callbacks import Callback, Sink, run_callback
from asdf_vm.core.data import PathLike
from asdf_vm.lib.errors import (
    CallbackExecutionError,
    CloneError,
    GitCommandError,
    InvalidNameError,
    NoCallbackError,
    PluginAlreadyExistsError,
    PluginNotFoundError,
    PluginUpdateError,
    PostUpdateCallbackError,
)
from asdf_vm.models.plugin import Plugin

logger = logging.getLogger(__name__)

PLUGIN_NAME_RE = re.compile(r"^[a-z0-9_-]+$")


def validate_plugin_name(name: str) -> None:
    """Raise InvalidNameError unless name matches [a-z0-9_-]+."""
    if not PLUGIN_NAME_RE.match(name):
        raise InvalidNameError(name)


def plugin_directory(data_dir: PathLike, name: str) -> Path:
    return data.plugin_directory(data_dir, name)


def plugin_exists(data_dir: PathLike, name: str) -> bool:
    """True only when the plugin path exists and is a directory."""
    return plugin_directory(data_dir, name).is_dir()


def new(conf: Settings, name: str) -> Plugin:
    """Build a Plugin for name without touching the filesystem."""
    return Plugin(name=name, dir=plugin_directory(conf.data_dir, name))


def get(conf: Settings, name: str) -> Plugin:
    """Look up an installed plugin by name."""
    validate_plugin_name(name)
    if not plugin_exists(conf.data_dir, name):
        raise PluginNotFoundError(name)
    return new(conf, name)


# ---------------------------------------------------------------------------
# Registry operations
# ---------------------------------------------------------------------------


def add(conf: Settings, name: str, url: str) -> Plugin:
    """Clone a plugin repository into the data directory.

    Raises:
        InvalidNameError: name is malformed
        PluginAlreadyExistsError: a plugin directory with that name exists
        CloneError: the repository could not be cloned
    """
    validate_plugin_name(name)

    plugin_dir = plugin_directory(conf.data_dir, name)
    if plugin_dir.exists():
        raise PluginAlreadyExistsError(name)

    plugin_dir.parent.mkdir(parents=True, exist_ok=True)
    try:
        git.clone(url, plugin_dir)
    except GitCommandError as e:
        if e.repository_not_found:
            raise CloneError(url, "repository not found") from e
        raise CloneError(url, e.detail) from e

    logger.info(f"Added plugin {name} from {url}")
    return new(conf, name)


def list_plugins(conf: Settings, with_urls: bool = False, with_refs: bool = False) -> list[Plugin]:
    """List installed plugins, sorted by name.

    Git metadata is only read for the fields that were asked for; a plugin
    directory that is not its own git work tree then raises GitRepositoryError.
    """
    plugins_dir = data.plugins_directory(conf.data_dir)
    if not plugins_dir.is_dir():
        return []

    plugins: list[Plugin] = []
    for entry in sorted(plugins_dir.iterdir()):
        if not entry.is_dir():
            continue

        plugin = Plugin(name=entry.name, dir=entry)
        if with_urls or with_refs:
            repo = git.open_repo(entry)
            if with_urls:
                plugin.url = repo.remote_url()
            if with_refs:
                plugin.ref = repo.head()
        plugins.append(plugin)

    return plugins


def remove(conf: Settings, name: str) -> None:
    """Delete a plugin's directory.

    Shims pointing at the plugin are left in place until regenerated.
    """
    validate_plugin_name(name)

    plugin_dir = plugin_directory(conf.data_dir, name)
    if not plugin_dir.is_dir():
        raise PluginNotFoundError(name)

    shutil.rmtree(plugin_dir)
    logger.info(f"Removed plugin {name}")


def update(
    conf: Settings,
    name: str,
    ref: str = "",
    stdout: Optional[Sink] = None,
    stderr: Optional[Sink] = None,
) -> str:
    """Update a plugin to ref, or to its remote default branch when ref is empty.

    Returns the commit hash now checked out. The post-plugin-update callback
    runs afterwards; if it fails the update is kept and
    PostUpdateCallbackError carries the new ref.
    """
    validate_plugin_name(name)

    plugin_dir = plugin_directory(conf.data_dir, name)
    if not plugin_dir.is_dir():
        raise PluginNotFoundError(name)

    repo = git.open_repo(plugin_dir)

    try:
        prev_ref = repo.head()
        new_ref = repo.update(ref)
    except GitCommandError as e:
        raise PluginUpdateError(name, e.detail) from e

    logger.info(f"Updated plugin {name} from {prev_ref[:7]} to {new_ref[:7]}")

    env = {
        "ASDF_PLUGIN_PATH": str(plugin_dir),
        "ASDF_PLUGIN_PREV_REF": prev_ref,
        "ASDF_PLUGIN_POST_REF": new_ref,
    }
    try:
        run_callback(
            new(conf, name),
            Callback.POST_PLUGIN_UPDATE,
            [],
            env,
            stdout if stdout is not None else sys.stdout,
            stderr if stderr is not None else sys.stderr,
        )
    except NoCallbackError:
        pass
    except CallbackExecutionError as e:
        logger.error(f"post-plugin-update failed for {name}: {e}")
        raise PostUpdateCallbackError(e, new_ref) from e

    return new_ref
