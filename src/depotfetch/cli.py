# src/depotfetch/cli.py

import argparse
import sys
from typing import Any, Dict, List, Optional, Tuple

import yaml

from depotfetch import log_utils, menu_repo, process, setup_config
from depotfetch.download import cli_integration as download_cli_integration
from depotfetch.download.interfaces import RepositoryEntry, RepoStrategy
from depotfetch.exceptions import DepotFetchError


def _prepare_command_run() -> Tuple[
    Dict[str, Any], download_cli_integration.DepotFetchIntegration
]:
    """
    Load the configuration, apply its logging settings and build the integration.

    Raises:
        ConfigFileError: The configuration file exists but cannot be loaded.
    """
    config = setup_config.load_config()

    if config.get("LOG_LEVEL"):
        log_utils.set_log_level(config["LOG_LEVEL"])
    if config.get("LOG_TO_FILE"):
        log_utils.add_file_logging(setup_config.LOG_DIR, config.get("LOG_LEVEL") or "INFO")

    integration = download_cli_integration.DepotFetchIntegration(config)
    return config, integration


def _parse_repo_args(values: Optional[List[str]]) -> Optional[List[RepositoryEntry]]:
    """Parse `owner/repo[:Type]` arguments; None when no argument was given."""
    if not values:
        return None
    entries = []
    for value in values:
        name, _, label = value.partition(":")
        entries.append(RepositoryEntry(name=name.strip(), strategy=RepoStrategy.from_label(label)))
    return entries


def _handle_download(args, integration) -> int:
    repositories = _parse_repo_args(args.repo)
    if args.select:
        repositories = menu_repo.select_repositories(
            repositories or integration.repositories()
        )
        if not repositories:
            return 1

    disperse = False if args.no_disperse else None
    result = integration.retrieve_result(
        args.app_id,
        args.name or args.app_id,
        repositories=repositories,
        output_root=args.output,
        disperse=disperse,
    )
    if not result:
        return 1

    log_utils.logger.info(f"Saved to {result.output_path}")
    if result.dispersal is not None:
        counts = result.dispersal
        log_utils.logger.info(
            f"Installed {counts.lua} lua, {counts.manifest} manifest and {counts.bin} bin files"
        )
    return 0


def _handle_dlc(args, integration) -> int:
    if args.dlc_command == "sync":
        applied = integration.sync_dlcs(args.app_id, args.dlc_ids)
        log_utils.logger.info(f"Synced {applied} DLCs for AppID {args.app_id}")
    else:
        dlcs = integration.list_dlcs(args.app_id)
        if not dlcs:
            log_utils.logger.info(f"No DLCs listed for AppID {args.app_id}")
        for dlc_id in dlcs:
            print(dlc_id)
    return 0


def _handle_library(args, integration) -> int:
    if args.library_command == "remove":
        removed = integration.remove_from_library(args.app_id)
        log_utils.logger.info(f"Removed {removed} files for AppID {args.app_id}")
        return 0

    entries = integration.list_library()
    if not entries:
        log_utils.logger.info("No games installed.")
    for entry in entries:
        status = "manifest" if entry.manifest_file else "no manifest"
        print(f"{entry.app_id}\t{entry.lua_file.name}\t{status}")
    return 0


def _handle_downloads(args, integration) -> int:
    files = integration.list_downloads(args.directory)
    if not files:
        log_utils.logger.info("No downloaded files found.")
    for item in files:
        print(f"{item.name}\t{item.size}\t{item.path}")
    return 0


def _handle_config(args) -> int:
    if args.config_command == "init":
        path = setup_config.write_default_config(overwrite=args.force)
        print(path)
    else:
        config = setup_config.load_config()
        print(yaml.safe_dump(config, default_flow_style=False, sort_keys=False), end="")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="depotfetch - fetch and install Steam depot bundles from GitHub mirrors"
    )
    subparsers = parser.add_subparsers(dest="command")

    download_parser = subparsers.add_parser(
        "download", help="Download the bundle for an AppID"
    )
    download_parser.add_argument("app_id", help="Steam AppID")
    download_parser.add_argument("--name", help="Game name used for output naming")
    download_parser.add_argument(
        "--repo",
        action="append",
        metavar="OWNER/REPO[:TYPE]",
        help="Repository to try (repeatable, overrides the configured list)",
    )
    download_parser.add_argument(
        "--select",
        action="store_true",
        help="Pick repositories interactively",
    )
    download_parser.add_argument("--output", help="Output directory")
    download_parser.add_argument(
        "--no-disperse",
        action="store_true",
        help="Only save the archive, do not install it into Steam",
    )

    disperse_parser = subparsers.add_parser(
        "disperse", help="Install a downloaded archive into Steam"
    )
    disperse_parser.add_argument("archive", help="Path to the zip archive")

    update_parser = subparsers.add_parser(
        "update", help="Refresh manifest ids of an installed game"
    )
    update_parser.add_argument("app_id", help="Steam AppID")
    update_parser.add_argument("--name", help="Game name for messages")

    dlc_parser = subparsers.add_parser("dlc", help="Manage DLC entries")
    dlc_subparsers = dlc_parser.add_subparsers(dest="dlc_command", required=True)
    dlc_sync = dlc_subparsers.add_parser("sync", help="Replace the DLC list")
    dlc_sync.add_argument("app_id", help="Main game AppID")
    dlc_sync.add_argument("dlc_ids", nargs="*", help="DLC AppIDs to keep")
    dlc_list = dlc_subparsers.add_parser("list", help="Show the DLC list")
    dlc_list.add_argument("app_id", help="Main game AppID")

    library_parser = subparsers.add_parser("library", help="Manage installed games")
    library_subparsers = library_parser.add_subparsers(dest="library_command")
    library_subparsers.add_parser("list", help="List installed games")
    library_remove = library_subparsers.add_parser("remove", help="Remove a game")
    library_remove.add_argument("app_id", help="Steam AppID")

    downloads_parser = subparsers.add_parser(
        "downloads", help="List retrieved archives, manifests and lua files"
    )
    downloads_parser.add_argument(
        "--directory", help="Directory to list instead of the configured DOWNLOAD_DIR"
    )

    subparsers.add_parser("restart-steam", help="Restart the Steam client")

    config_parser = subparsers.add_parser("config", help="Manage the configuration file")
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    config_init = config_subparsers.add_parser("init", help="Write the default configuration")
    config_init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    config_subparsers.add_parser("show", help="Print the effective configuration")

    return parser


def run(argv: Optional[List[str]] = None) -> int:
    """
    Parse argv and run the requested subcommand.

    Returns:
        int: Process exit code. Application errors are reported as a single log
        line and map to 1.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "config":
            return _handle_config(args)

        config, integration = _prepare_command_run()

        if args.command == "download":
            return _handle_download(args, integration)
        elif args.command == "disperse":
            counts = integration.disperse_archive(args.archive)
            log_utils.logger.info(
                f"Installed {counts.lua} lua, {counts.manifest} manifest and {counts.bin} bin files"
            )
            return 0
        elif args.command == "update":
            message = integration.update_manifests(args.app_id, args.name or args.app_id)
            log_utils.logger.info(message)
            return 0
        elif args.command == "dlc":
            return _handle_dlc(args, integration)
        elif args.command == "library":
            return _handle_library(args, integration)
        elif args.command == "downloads":
            return _handle_downloads(args, integration)
        elif args.command == "restart-steam":
            process.restart_steam()
            return 0
    except DepotFetchError as e:
        log_utils.logger.error(f"Error: {e}")
        return 1

    parser.print_help()
    return 1


def main():
    """Entry point for the depotfetch console script."""
    sys.exit(run())


if __name__ == "__main__":
    main()
