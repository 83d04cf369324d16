"""
asdf CLI.

Usage:
    asdf plugin add NAME GIT_URL         # Clone a plugin into the data directory
    asdf plugin list [--urls] [--refs]   # List installed plugins
    asdf plugin remove NAME              # Delete a plugin
    asdf plugin update NAME [REF]        # Update a plugin to REF or its default branch
    asdf plugin update --all             # Update every plugin
    asdf reshim [NAME [VERSION]]         # Regenerate shims
    asdf where NAME VERSION              # Print a version's install path
"""

import argparse
import sys
from typing import Optional

from asdf_vm import __version__
from asdf_vm.config import Settings, get_settings
from asdf_vm.core import installs, plugins, shims, toolversions
from asdf_vm.core.callbacks import Callback, run_callback
from asdf_vm.lib.errors import AsdfError, NoCallbackError, PostUpdateCallbackError
from asdf_vm.lib.logger import get_logger, setup_logging

logger = get_logger(__name__)


# --- Helpers ---


def _run_optional_hook(
    conf: Settings, name: str, callback: Callback, env: Optional[dict[str, str]] = None
) -> None:
    """Run a plugin hook if the plugin provides one."""
    plugin = plugins.new(conf, name)
    try:
        run_callback(plugin, callback, [], env or {}, sys.stdout, sys.stderr)
    except NoCallbackError:
        pass


# --- Plugin commands ---


def cmd_plugin_add(conf: Settings, args: argparse.Namespace) -> None:
    """Clone a plugin and run its post-plugin-add hook."""
    plugin = plugins.add(conf, args.name, args.git_url)
    _run_optional_hook(
        conf, plugin.name, Callback.POST_PLUGIN_ADD,
        {"ASDF_PLUGIN_PATH": str(plugin.dir), "ASDF_PLUGIN_SOURCE_URL": args.git_url},
    )


def cmd_plugin_list(conf: Settings, args: argparse.Namespace) -> None:
    """Print installed plugins, optionally with origin URLs and refs."""
    found = plugins.list_plugins(conf, with_urls=args.urls, with_refs=args.refs)
    if not found:
        print("No plugins installed")
        return

    for plugin in found:
        columns = [plugin.name]
        if args.urls:
            columns.append(plugin.url or "")
        if args.refs:
            columns.append(plugin.ref or "")
        print("\t".join(columns))


def cmd_plugin_remove(conf: Settings, args: argparse.Namespace) -> None:
    """Run the pre-plugin-remove hook, then delete the plugin."""
    plugin = plugins.get(conf, args.name)
    _run_optional_hook(
        conf, plugin.name, Callback.PRE_PLUGIN_REMOVE,
        {"ASDF_PLUGIN_PATH": str(plugin.dir)},
    )
    plugins.remove(conf, args.name)


def _update_one(conf: Settings, name: str, ref: str) -> None:
    try:
        new_ref = plugins.update(conf, name, ref, stdout=sys.stdout, stderr=sys.stderr)
    except PostUpdateCallbackError as e:
        print(f"Updated {name} to ref {e.ref}")
        raise
    print(f"Updated {name} to ref {new_ref}")


def cmd_plugin_update(conf: Settings, args: argparse.Namespace) -> None:
    """Update one plugin, or all of them with --all."""
    if args.all:
        failed = 0
        for plugin in plugins.list_plugins(conf):
            try:
                _update_one(conf, plugin.name, "")
            except AsdfError as e:
                logger.error(str(e))
                failed += 1
        if failed:
            sys.exit(1)
        return

    if not args.name:
        print("usage: asdf plugin update {NAME [REF] | --all}", file=sys.stderr)
        sys.exit(1)
    _update_one(conf, args.name, args.ref or "")


# --- Shim and install commands ---


def cmd_reshim(conf: Settings, args: argparse.Namespace) -> None:
    """Regenerate shims for everything, one plugin, or one plugin version."""
    if args.name and args.version:
        plugin = plugins.get(conf, args.name)
        shims.generate_for_version(conf, plugin, args.version)
    else:
        shims.generate_all(conf, args.name)


def cmd_where(conf: Settings, args: argparse.Namespace) -> None:
    """Print the install path of a plugin version."""
    plugin = plugins.get(conf, args.name)
    version_type, version = toolversions.parse(args.version)
    if version_type == toolversions.SYSTEM:
        print("System version is selected")
        sys.exit(1)
    if not installs.is_installed(conf, plugin, version_type, version):
        print(f"Version not installed: {args.name} {args.version}", file=sys.stderr)
        sys.exit(1)
    print(installs.install_path(conf, plugin, version_type, version))


# --- CLI entry point ---


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asdf",
        description="The multiple runtime version manager",
    )
    parser.add_argument("--version", action="version", version=f"asdf {__version__}")
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log debug output to stderr",
    )
    subparsers = parser.add_subparsers(dest="command")

    # plugin subcommand
    plugin_parser = subparsers.add_parser("plugin", help="Plugin management")
    plugin_sub = plugin_parser.add_subparsers(dest="action")

    add_parser = plugin_sub.add_parser("add", help="Add a plugin from a git URL")
    add_parser.add_argument("name", help="Plugin name")
    add_parser.add_argument("git_url", help="Plugin repository URL")

    list_parser = plugin_sub.add_parser("list", help="List installed plugins")
    list_parser.add_argument("--urls", action="store_true", help="Show URLs")
    list_parser.add_argument("--refs", action="store_true", help="Show Refs")

    remove_parser = plugin_sub.add_parser("remove", help="Remove a plugin")
    remove_parser.add_argument("name", help="Plugin name")

    update_parser = plugin_sub.add_parser("update", help="Update a plugin")
    update_parser.add_argument("name", nargs="?", help="Plugin name")
    update_parser.add_argument("ref", nargs="?", help="Git ref to check out")
    update_parser.add_argument("--all", action="store_true", help="Update all plugins")

    # reshim
    reshim_parser = subparsers.add_parser("reshim", help="Regenerate shims")
    reshim_parser.add_argument("name", nargs="?", help="Plugin name")
    reshim_parser.add_argument("version", nargs="?", help="Installed version")

    # where
    where_parser = subparsers.add_parser("where", help="Show a version's install path")
    where_parser.add_argument("name", help="Plugin name")
    where_parser.add_argument("version", help="Version")

    return parser


PLUGIN_COMMANDS = {
    "add": cmd_plugin_add,
    "list": cmd_plugin_list,
    "remove": cmd_plugin_remove,
    "update": cmd_plugin_update,
}


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    conf = get_settings()
    setup_logging(level="DEBUG" if args.verbose else None, settings=conf)

    if args.command == "plugin":
        handler = PLUGIN_COMMANDS.get(args.action)
        if handler is None:
            parser.print_help()
            return
    elif args.command == "reshim":
        handler = cmd_reshim
    elif args.command == "where":
        handler = cmd_where
    else:
        parser.print_help()
        return

    try:
        handler(conf, args)
    except AsdfError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
