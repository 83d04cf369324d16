"""
Git plumbing for plugin repositories.

Thin blocking wrappers around the git executable. Every call captures
output and raises GitCommandError on a non-zero exit.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from asdf_vm.lib.errors import GitCommandError, GitRepositoryError

logger = logging.getLogger(__name__)

GIT = "git"


def _run(args: list[str], cwd: Optional[Path] = None) -> str:
    """Run a git command and return its stripped stdout."""
    argv = [GIT, *args]
    logger.debug(f"RUN {' '.join(argv)}" + (f" (in {cwd})" if cwd else ""))
    try:
        result = subprocess.run(
            argv,
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            # Never prompt for credentials; an unreachable repo must fail
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
    except OSError as e:
        raise GitCommandError(args, -1, str(e)) from e

    stdout = result.stdout.decode("utf-8", errors="replace")
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        raise GitCommandError(args, result.returncode, stderr)
    return stdout.strip()


def clone(url: str, dest: Path) -> "Repo":
    """Clone url into dest and return the new repository."""
    logger.info(f"Cloning {url} into {dest}")
    _run(["clone", "--quiet", url, str(dest)])
    return Repo(dest)


def open_repo(path: Path) -> "Repo":
    """Open the git work tree rooted exactly at path.

    Raises GitRepositoryError when path has no .git or when git resolves it
    to some enclosing work tree instead.
    """
    if not (path / ".git").exists():
        raise GitRepositoryError(path, "repository does not exist")

    try:
        toplevel = _run(["rev-parse", "--show-toplevel"], cwd=path)
    except GitCommandError as e:
        raise GitRepositoryError(path, e.detail) from e

    if Path(toplevel).resolve() != path.resolve():
        raise GitRepositoryError(path, "repository does not exist")
    return Repo(path)


class Repo:
    """A plugin's git work tree."""

    def __init__(self, path: Path):
        self.path = path

    def git(self, *args: str) -> str:
        return _run(list(args), cwd=self.path)

    def head(self) -> str:
        """Full commit hash currently checked out."""
        return self.git("rev-parse", "HEAD")

    def remote_url(self, remote: str = "origin") -> str:
        """URL of the named remote, or "" when it is not configured."""
        try:
            return self.git("config", "--get", f"remote.{remote}.url")
        except GitCommandError as e:
            # git config exits 1 when the key is unset
            if e.returncode == 1:
                return ""
            raise

    def default_branch(self, remote: str = "origin") -> str:
        """Branch the remote's HEAD points at."""
        output = self.git("ls-remote", "--symref", remote, "HEAD")
        for line in output.splitlines():
            if line.startswith("ref:"):
                target = line.split()[1]
                return target.removeprefix("refs/heads/")
        raise GitCommandError(
            ["ls-remote", "--symref", remote, "HEAD"], 0, "remote HEAD is not a branch"
        )

    def update(self, ref: str = "", remote: str = "origin") -> str:
        """Fetch and force-checkout ref (the remote default branch when empty).

        A ref naming a remote branch moves the local branch to the remote
        tip. Returns the new HEAD commit hash.
        """
        if not ref:
            branch = self.default_branch(remote)
            self.git("fetch", "--prune", "--update-head-ok", remote, f"{branch}:{branch}")
            self.git("-c", "advice.detachedHead=false", "checkout", "--force", branch)
            return self.head()

        self.git("fetch", "--prune", "--update-head-ok", remote)
        if self.has_ref(f"refs/remotes/{remote}/{ref}"):
            self.git("checkout", "--force", "-B", ref, f"{remote}/{ref}")
        else:
            self.git("-c", "advice.detachedHead=false", "checkout", "--force", ref)
        return self.head()

    def has_ref(self, ref: str) -> bool:
        """True when ref resolves to a commit in this repository."""
        try:
            self.git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        except GitCommandError as e:
            if e.returncode == 1:
                return False
            raise
        return True
