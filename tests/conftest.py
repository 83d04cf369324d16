"""
Pytest configuration and fixtures.
"""

import os
import shutil
import stat
import subprocess
import tempfile
from pathlib import Path

import pytest

# Set test environment
os.environ["ASDF_DATA_DIR"] = tempfile.mkdtemp(prefix="asdf-test-")
os.environ["ASDF_LOG_LEVEL"] = "WARNING"

from asdf_vm.config import Settings  # noqa: E402
from asdf_vm.core import plugins  # noqa: E402

TEST_PLUGIN_NAME = "lua"

# bin/ scripts of the dummy plugin used across tests
DUMMY_PLUGIN_SCRIPTS = {
    "debug": '#!/usr/bin/env bash\necho "$@"\n',
    "list-all": '#!/usr/bin/env bash\necho "1.0.0 1.1.0 2.0.0"\n',
    "post-plugin-update": (
        "#!/usr/bin/env bash\n"
        'echo "plugin updated path=${ASDF_PLUGIN_PATH} '
        'old git-ref=${ASDF_PLUGIN_PREV_REF} new git-ref=${ASDF_PLUGIN_POST_REF}"\n'
    ),
}


def write_executable(path: Path, content: str) -> Path:
    """Write a file and mark it executable."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_dummy_plugin(directory: Path) -> Path:
    """Lay out the dummy plugin's files in directory."""
    for name, content in DUMMY_PLUGIN_SCRIPTS.items():
        write_executable(directory / "bin" / name, content)
    return directory


def run_git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        [
            "git",
            "-c", "user.name=Test",
            "-c", "user.email=test@example.com",
            "-c", "init.defaultBranch=main",
            "-c", "commit.gpgsign=false",
            *args,
        ],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def make_plugin_repo(parent: Path, name: str) -> Path:
    """Create a local git repository holding the dummy plugin, with two commits."""
    location = parent / f"repo-{name}"
    write_dummy_plugin(location)

    run_git(location, "init", "-q")
    run_git(location, "add", "-A")
    run_git(location, "commit", "-q", "-m", f"asdf {name} plugin init")

    (location / "README.md").write_text("")
    run_git(location, "add", "-A")
    run_git(location, "commit", "-q", "-m", f"asdf {name} plugin readme")
    return location


def install_version(
    conf: Settings,
    plugin_name: str,
    version: str,
    executables: tuple[str, ...] = ("dummy", "other_bin"),
    bin_dir: str = "bin",
) -> Path:
    """Populate an install directory the way a plugin's install callback would."""
    install_dir = conf.data_dir / "installs" / plugin_name / version
    for executable in executables:
        write_executable(install_dir / bin_dir / executable, f"#!/usr/bin/env bash\necho {executable} {version}\n")
    return install_dir


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Fresh data directory for each test."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def conf(data_dir: Path) -> Settings:
    """Settings rooted at the test data directory."""
    return Settings(data_dir=data_dir)


@pytest.fixture
def local_plugin(conf: Settings):
    """Dummy plugin placed directly in the plugins directory (no git)."""
    write_dummy_plugin(conf.data_dir / "plugins" / TEST_PLUGIN_NAME)
    return plugins.new(conf, TEST_PLUGIN_NAME)


@pytest.fixture
def plugin_repo(tmp_path: Path) -> Path:
    """Local git repository of the dummy plugin."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    return make_plugin_repo(tmp_path, TEST_PLUGIN_NAME)


@pytest.fixture
def added_plugin(conf: Settings, plugin_repo: Path):
    """Dummy plugin added to the registry by cloning plugin_repo."""
    return plugins.add(conf, TEST_PLUGIN_NAME, str(plugin_repo))


@pytest.fixture
def install(conf: Settings):
    """Factory installing fake versions into the test data directory."""

    def _install(plugin_name: str, version: str, **kwargs) -> Path:
        return install_version(conf, plugin_name, version, **kwargs)

    return _install


@pytest.fixture
def executable():
    """Factory writing executable scripts."""
    return write_executable


@pytest.fixture
def git():
    """Run git with a throwaway identity."""
    return run_git
