"""
Data directory layout.

    {data_dir}/plugins/{plugin}/
    {data_dir}/installs/{plugin}/{encoded-version}/
    {data_dir}/downloads/{plugin}/{encoded-version}/
    {data_dir}/shims/{executable}
    {data_dir}/tmp/locks/shims/{executable}.lock

Pure path composition, no I/O.
"""

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]

PLUGINS_DIR = "plugins"
INSTALLS_DIR = "installs"
DOWNLOADS_DIR = "downloads"
SHIMS_DIR = "shims"


def plugins_directory(data_dir: PathLike) -> Path:
    return Path(data_dir) / PLUGINS_DIR


def plugin_directory(data_dir: PathLike, plugin_name: str) -> Path:
    return plugins_directory(data_dir) / plugin_name


def install_directory(data_dir: PathLike, plugin_name: str) -> Path:
    """Directory holding every installed version of a plugin."""
    return Path(data_dir) / INSTALLS_DIR / plugin_name


def download_directory(data_dir: PathLike, plugin_name: str) -> Path:
    """Directory holding downloaded sources for every version of a plugin."""
    return Path(data_dir) / DOWNLOADS_DIR / plugin_name


def shims_directory(data_dir: PathLike) -> Path:
    return Path(data_dir) / SHIMS_DIR


def shim_lock_directory(data_dir: PathLike) -> Path:
    # Kept out of the shims directory, which sits on the user's PATH
    return Path(data_dir) / "tmp" / "locks" / SHIMS_DIR
