"""
Shim generation.

Every executable provided by an installed plugin version gets a shim in
{data_dir}/shims/. A shim records which (plugin, version) pairs provide its
executable, newest first, and hands off to `asdf exec` at run time:

    #!/usr/bin/env bash
    # asdf-plugin: python 3.12.1
    # asdf-plugin: python 3.11.7
    exec asdf exec "python" "$@"

Several plugins and versions can share one shim; writing a shim only ever
adds its own record and leaves the others alone.
"""

import fcntl
import io
import logging
import os
import re
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from asdf_vm.config import Settings
from asdf_vm.core import data, installs, plugins, toolversions
from asdf_vm.core.callbacks import Callback, run_callback
from asdf_vm.lib.errors import NoCallbackError
from asdf_vm.models.plugin import Plugin

logger = logging.getLogger(__name__)

SHEBANG = "#!/usr/bin/env bash"
RECORD_PREFIX = "# asdf-plugin: "
SHIM_MODE = 0o755

DEFAULT_EXECUTABLE_DIRS = ["bin"]

_RECORD_RE = re.compile(r"^# asdf-plugin: (\S+) (.+)$")
_TRAILER_RE = re.compile(r'^exec asdf exec "(.*)" "\$@"$')


# ---------------------------------------------------------------------------
# Shim file model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ShimRecord:
    """One (plugin, version) pair registered in a shim."""

    plugin_name: str
    version: str

    def render(self) -> str:
        return f"{RECORD_PREFIX}{self.plugin_name} {self.version}"


@dataclass
class ShimFile:
    """Parsed contents of a shim script."""

    name: str
    records: list[ShimRecord] = field(default_factory=list)
    extra_lines: list[str] = field(default_factory=list)  # unrecognized lines, kept verbatim

    @classmethod
    def parse(cls, name: str, text: str) -> "ShimFile":
        shim = cls(name=name)
        for line in text.splitlines():
            if line == SHEBANG or _TRAILER_RE.match(line):
                continue
            match = _RECORD_RE.match(line)
            if match:
                record = ShimRecord(match.group(1), match.group(2))
                if record not in shim.records:
                    shim.records.append(record)
            elif line:
                shim.extra_lines.append(line)
        return shim

    @property
    def trailer(self) -> str:
        return f'exec asdf exec "{self.name}" "$@"'

    def add(self, record: ShimRecord) -> bool:
        """Register record as the newest entry. Returns False if already present."""
        if record in self.records:
            return False
        self.records.insert(0, record)
        return True

    def render(self) -> str:
        lines = [SHEBANG, *(r.render() for r in self.records), *self.extra_lines, self.trailer]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Paths and locking
# ---------------------------------------------------------------------------


def path(conf: Settings, shim_name: str) -> Path:
    """Location of the shim for an executable name."""
    return data.shims_directory(conf.data_dir) / shim_name


@contextmanager
def _shim_lock(conf: Settings, shim_name: str) -> Iterator[None]:
    """Hold an exclusive advisory lock for one shim name."""
    lock_dir = data.shim_lock_directory(conf.data_dir)
    lock_dir.mkdir(parents=True, exist_ok=True)
    with open(lock_dir / f"{shim_name}.lock", "w") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def _atomic_write_shim(target: Path, content: str) -> None:
    """Atomically replace target with an executable file holding content."""
    fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}-", suffix=".tmp")
    closed = False
    try:
        os.write(fd, content.encode("utf-8"))
        os.fchmod(fd, SHIM_MODE)
        os.close(fd)
        closed = True
        os.rename(tmp_path, target)
    except Exception:
        if not closed:
            os.close(fd)
        if Path(tmp_path).exists():
            os.unlink(tmp_path)
        raise


def read_shim(conf: Settings, shim_name: str) -> ShimFile:
    """Parse an existing shim. Raises FileNotFoundError if there is none."""
    text = path(conf, shim_name).read_text(encoding="utf-8")
    return ShimFile.parse(shim_name, text)


# ---------------------------------------------------------------------------
# Executable discovery
# ---------------------------------------------------------------------------


def executable_dirs(plugin: Plugin) -> list[str]:
    """Directories, relative to an install, that hold a plugin's executables.

    Plugins override the default ["bin"] with a list-bin-paths callback that
    prints whitespace-separated relative directories.
    """
    stdout = io.StringIO()
    stderr = io.StringIO()
    try:
        run_callback(plugin, Callback.LIST_BIN_PATHS, [], {}, stdout, stderr)
    except NoCallbackError:
        return list(DEFAULT_EXECUTABLE_DIRS)

    return stdout.getvalue().split()


def tool_executables(conf: Settings, plugin: Plugin, version: str) -> list[str]:
    """Absolute paths of every file directly inside a version's executable dirs.

    Directories that do not exist in the install are skipped.
    """
    install_dir = installs.version_install_dir(conf, plugin, version)
    executables: list[str] = []

    for rel_dir in executable_dirs(plugin):
        try:
            entries = sorted((install_dir / rel_dir).iterdir())
        except FileNotFoundError:
            logger.debug(f"{plugin.name} {version}: no {rel_dir} directory in {install_dir}")
            continue

        executables.extend(str(entry) for entry in entries if entry.is_file())

    return executables


# ---------------------------------------------------------------------------
# Writing shims
# ---------------------------------------------------------------------------


def write(conf: Settings, plugin: Plugin, version: str, executable_path: str) -> None:
    """Create or update the shim for an executable.

    Adds a record for (plugin, version) ahead of existing ones. A shim that
    already has the record is left untouched.
    """
    shim_name = os.path.basename(executable_path)
    shim_path = path(conf, shim_name)
    record = ShimRecord(plugin.name, version)

    shim_path.parent.mkdir(parents=True, exist_ok=True)
    with _shim_lock(conf, shim_name):
        try:
            shim = ShimFile.parse(shim_name, shim_path.read_text(encoding="utf-8"))
            created = False
        except FileNotFoundError:
            shim = ShimFile(name=shim_name)
            created = True

        if not shim.add(record):
            return

        _atomic_write_shim(shim_path, shim.render())

    if created:
        logger.info(f"Created shim {shim_name} for {plugin.name} {version}")
    else:
        logger.info(f"Added {plugin.name} {version} to shim {shim_name}")


def generate_for_version(conf: Settings, plugin: Plugin, version: str) -> None:
    """Write a shim for every executable an installed version provides."""
    for executable in tool_executables(conf, plugin, version):
        write(conf, plugin, version, executable)


def generate_for_plugin_versions(conf: Settings, plugin: Plugin) -> None:
    """Regenerate shims for every installed version of a plugin."""
    for token in installs.installed(conf, plugin):
        version = toolversions.format_version(*toolversions.parse_from_fs(token))
        generate_for_version(conf, plugin, version)


def generate_all(conf: Settings, plugin_name: Optional[str] = None) -> None:
    """Regenerate shims for every installed plugin, or for one by name."""
    if plugin_name is not None:
        targets = [plugins.get(conf, plugin_name)]
    else:
        targets = plugins.list_plugins(conf)

    for plugin in targets:
        generate_for_plugin_versions(conf, plugin)
