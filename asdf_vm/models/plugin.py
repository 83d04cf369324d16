"""
Plugin models.

Plugins are git repositories cloned into the data directory:
  {data_dir}/plugins/{name}/.git    : clone of the plugin repository
  {data_dir}/plugins/{name}/bin/    : callback scripts (install, list-bin-paths, ...)
"""

from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

if TYPE_CHECKING:
    from asdf_vm.core.callbacks import Callback, Sink


class Plugin(BaseModel):
    """An installed plugin."""

    name: str  # Directory name, validated against [a-z0-9_-]+
    dir: Path  # {data_dir}/plugins/{name}
    url: Optional[str] = None  # origin remote, only when requested
    ref: Optional[str] = None  # checked out commit, only when requested

    @property
    def bin_dir(self) -> Path:
        """Directory holding the plugin's callback scripts."""
        return self.dir / "bin"

    def run_callback(
        self,
        name: Union[str, "Callback"],
        args: Sequence[str],
        env: Mapping[str, str],
        stdout: "Sink",
        stderr: "Sink",
        base_env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Run one of this plugin's callbacks. See asdf_vm.core.callbacks.run_callback."""
        from asdf_vm.core.callbacks import run_callback

        run_callback(self, name, args, env, stdout, stderr, base_env=base_env)
