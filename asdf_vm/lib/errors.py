"""
Error types raised by the plugin registry, callback protocol and git plumbing.

Every domain error derives from AsdfError so the command line can report
them uniformly. Filesystem errors (OSError) are never wrapped.
"""

from pathlib import Path
from typing import Optional, Sequence


class AsdfError(Exception):
    """Base class for all asdf errors."""


# ---------------------------------------------------------------------------
# Plugin registry
# ---------------------------------------------------------------------------


class InvalidNameError(AsdfError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"{name} is invalid. Name may only contain lowercase letters, numbers, '_', and '-'"
        )


class PluginAlreadyExistsError(AsdfError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Plugin named {name} already added")


class PluginNotFoundError(AsdfError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no such plugin: {name}")


class CloneError(AsdfError):
    """Cloning a plugin repository failed (unreachable, not found, bad URL)."""

    def __init__(self, url: str, detail: str):
        self.url = url
        self.detail = detail
        super().__init__(f"unable to clone plugin: {detail}")


class GitRepositoryError(AsdfError):
    """A plugin directory exists but is not a usable git repository."""

    def __init__(self, path: Path, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"unable to open plugin Git repository: {detail}")


class PluginUpdateError(AsdfError):
    """Fetching or checking out a new ref for a plugin failed."""

    def __init__(self, name: str, detail: str):
        self.name = name
        self.detail = detail
        super().__init__(f"unable to update plugin {name}: {detail}")


# ---------------------------------------------------------------------------
# Git plumbing
# ---------------------------------------------------------------------------


class GitCommandError(AsdfError):
    """A git subprocess exited non-zero or could not be launched."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"git {' '.join(self.args_list)} failed ({returncode}): {stderr.strip()}"
        )

    @property
    def detail(self) -> str:
        """Last non-empty line of git's stderr, which carries the actual reason."""
        lines = [line.strip() for line in self.stderr.splitlines() if line.strip()]
        if not lines:
            return f"git exited with status {self.returncode}"
        return lines[-1].removeprefix("fatal: ")

    @property
    def repository_not_found(self) -> bool:
        """True when the remote reported that the repository does not exist."""
        text = self.stderr.lower()
        return "does not exist" in text or "not found" in text


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------


class NoCallbackError(AsdfError):
    """The plugin does not provide the requested callback script.

    Expected and recoverable: callers implementing optional hooks catch it.
    """

    def __init__(self, plugin_name: str, callback_name: str):
        self.plugin_name = plugin_name
        self.callback_name = callback_name
        super().__init__(
            f"Plugin named {plugin_name} does not have a callback named {callback_name}"
        )


class CallbackExecutionError(AsdfError):
    """A callback script ran and failed, or could not be launched."""

    def __init__(
        self,
        plugin_name: str,
        callback_name: str,
        returncode: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.plugin_name = plugin_name
        self.callback_name = callback_name
        self.returncode = returncode
        self.cause = cause
        if cause is not None:
            reason = str(cause)
        else:
            reason = f"exit status {returncode}"
        super().__init__(
            f"Callback {callback_name} of plugin {plugin_name} failed: {reason}"
        )


class PostUpdateCallbackError(CallbackExecutionError):
    """post-plugin-update failed after the git update was already applied."""

    def __init__(self, error: CallbackExecutionError, ref: str):
        super().__init__(
            error.plugin_name, error.callback_name, error.returncode, error.cause
        )
        self.ref = ref
