"""
Install and download locations for plugin versions.

Versions are opaque strings here; only the "path" version type is special:
its install path is the user-supplied location itself and it has nothing
to download.
"""

import logging
import os
from pathlib import Path

from asdf_vm.config import Settings
from asdf_vm.core import data, toolversions
from asdf_vm.models.plugin import Plugin

logger = logging.getLogger(__name__)


def installed(conf: Settings, plugin: Plugin) -> list[str]:
    """List the encoded version directories installed for a plugin.

    A missing install directory means nothing is installed. Any other error
    reading it (permission denied, not a directory) is raised.
    """
    install_dir = data.install_directory(conf.data_dir, plugin.name)
    try:
        entries = sorted(install_dir.iterdir())
    except FileNotFoundError:
        return []

    return [entry.name for entry in entries if entry.is_dir()]


def install_path(conf: Settings, plugin: Plugin, version_type: str, version: str) -> str:
    """Return the directory a version is (or would be) installed in."""
    if version_type == toolversions.PATH:
        return version

    return str(
        data.install_directory(conf.data_dir, plugin.name)
        / toolversions.format_for_fs(version_type, version)
    )


def download_path(conf: Settings, plugin: Plugin, version_type: str, version: str) -> str:
    """Return the download directory for a version, or "" for path versions."""
    if version_type == toolversions.PATH:
        return ""

    return str(
        data.download_directory(conf.data_dir, plugin.name)
        / toolversions.format_for_fs(version_type, version)
    )


def is_installed(conf: Settings, plugin: Plugin, version_type: str, version: str) -> bool:
    """Check whether a version is installed.

    Only "does not exist" counts as not installed; a stat failing for any
    other reason (e.g. permission denied on a parent) is reported as installed.
    """
    path = install_path(conf, plugin, version_type, version)
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.debug(f"stat {path} failed, treating as installed: {e}")
    return True


def version_install_dir(conf: Settings, plugin: Plugin, version: str) -> Path:
    """Install directory of a version string such as "1.2.3" or "ref:main"."""
    version_type, version = toolversions.parse(version)
    return Path(install_path(conf, plugin, version_type, version))
