"""
Yarn - Command line entry point.

Works with share links and snapshots outside the browser:

  yarn-capsule keygen                         # new log in key
  yarn-capsule share thread.json              # snapshot -> share link
  yarn-capsule open '<link>' -o thread.json   # share link -> snapshot
  yarn-capsule proof KEY alice                # identity proof for a user
  yarn-capsule login '<link>' KEY             # which user a key belongs to
  yarn-capsule create-user thread.json alice  # add a user, print their key
  yarn-capsule config set share base_url URL  # store a setting
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import aiofiles
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .capsule import CapsuleCodec
from .config import Config
from .constants import APP_NAME, DEFAULT_DATA_DIR, LOG_DATE_FORMAT, LOG_FORMAT
from .errors import ErrorCode, ThreadError, YarnError
from .fragment import fragment_from_url, share_url
from .identity import IdentityProofService
from .keys import SymmetricKeyManager
from .model import Snapshot
from .providers import DEFAULT_PROVIDER
from .session import authenticate, open_fragment, produce_share_fragment
from .thread import add_user, get_parent_post
from .utils import available_image_indexes, format_timestamp, relative_time_string, truncate_string

logger = logging.getLogger(__name__)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def configure_logging(config: Config, debug: bool = False) -> None:
    """Configure the package logger from the [logging] config section."""
    level_name = "DEBUG" if debug else str(config.get("logging", "level", "WARNING")).upper()
    level = getattr(logging, level_name, logging.WARNING)

    handlers: List[logging.Handler] = []
    if config.get("logging", "console_logging", True):
        handlers.append(logging.StreamHandler(sys.stderr))
    if config.get("logging", "file_logging", False):
        log_dir = Path(DEFAULT_DATA_DIR).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / config.get("logging", "file", "yarn.log")))

    package_logger = logging.getLogger(__package__)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    if not handlers:
        package_logger.addHandler(logging.NullHandler())
    package_logger.setLevel(level)


async def read_snapshot(path: Path) -> Snapshot:
    """Read a snapshot JSON file."""
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        return Snapshot.from_json(await f.read())


async def write_snapshot(path: Path, snapshot: Snapshot) -> None:
    """Write a snapshot JSON file atomically."""
    json_data = json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False)
    temp_file = path.with_name(path.name + ".tmp")
    async with aiofiles.open(temp_file, "w", encoding="utf-8") as f:
        await f.write(json_data)
    temp_file.replace(path)
    logger.info(f"Snapshot written: {path}")


def _print_line(text: str) -> None:
    console.print(text, soft_wrap=True, markup=False)


def _print_error(text: str) -> None:
    err_console.print(text, soft_wrap=True, markup=False)


def print_thread(snapshot: Snapshot, now_millis: int) -> None:
    """Render the posts of a snapshot as a table, oldest first."""
    table = Table(title=f"{len(snapshot.root_post_ids)} threads, {len(snapshot.users)} users")
    table.add_column("Post", no_wrap=True)
    table.add_column("Author", style="cyan")
    table.add_column("Created", no_wrap=True)
    table.add_column("Age", justify="right")
    table.add_column("Likes", justify="right")
    table.add_column("Content")

    for post in snapshot.all_posts:
        parent = get_parent_post(snapshot, post.post_id)
        label = post.post_id if parent is None else f"  \u21b3 {post.post_id}"
        table.add_row(
            escape(label),
            escape(post.username),
            format_timestamp(post.created_at, "%Y-%m-%d %H:%M"),
            relative_time_string(now_millis - post.created_at),
            str(len(post.likes)),
            escape(truncate_string(post.content.replace("\n", " "), 60)),
        )

    console.print(table)


async def _cmd_keygen(args: argparse.Namespace, codec: CapsuleCodec, config: Config) -> int:
    _print_line(SymmetricKeyManager.export_text(SymmetricKeyManager.generate()))
    return 0


async def _cmd_share(args: argparse.Namespace, codec: CapsuleCodec, config: Config) -> int:
    snapshot = await read_snapshot(Path(args.snapshot))
    fragment = await produce_share_fragment(snapshot, codec)
    base_url = args.base_url or config.get("share", "base_url")
    _print_line(fragment if args.fragment_only else share_url(base_url, fragment))
    return 0


async def _cmd_open(args: argparse.Namespace, codec: CapsuleCodec, config: Config) -> int:
    snapshot = await open_fragment(fragment_from_url(args.link), codec)

    if args.output:
        await write_snapshot(Path(args.output), snapshot)
        _print_error(f"Opened thread: {len(snapshot.users)} users, {len(snapshot.all_posts)} posts")
    elif args.summary:
        print_thread(snapshot, DEFAULT_PROVIDER.now_millis())
    else:
        console.print_json(snapshot.to_json())
    return 0


async def _cmd_proof(args: argparse.Namespace, codec: CapsuleCodec, config: Config) -> int:
    key = SymmetricKeyManager.import_text(args.key)
    _print_line(IdentityProofService.derive_proof(key, args.username))
    return 0


async def _cmd_login(args: argparse.Namespace, codec: CapsuleCodec, config: Config) -> int:
    snapshot = await open_fragment(fragment_from_url(args.link), codec)
    _print_line(await authenticate(snapshot, args.key))
    return 0


async def _cmd_config(args: argparse.Namespace, codec: Optional[CapsuleCodec], config: Config) -> int:
    if args.action == "show":
        console.print_json(json.dumps(config.to_dict()))
        return 0

    value = config.update_from_text(args.section, args.key, args.value)
    if (args.section, args.key) == ("capsule", "compression"):
        CapsuleCodec(value)
    config.save()
    logger.info(f"Config updated: {args.section}.{args.key}")
    _print_error(f"Saved {args.section}.{args.key} to {config.config_path}")
    return 0


async def _cmd_create_user(args: argparse.Namespace, codec: CapsuleCodec, config: Config) -> int:
    path = Path(args.snapshot)
    snapshot = await read_snapshot(path)

    image_index = args.image
    if image_index is None:
        free = available_image_indexes(snapshot)
        if not free:
            raise ThreadError(ErrorCode.E603_NO_PICTURE_AVAILABLE, "Every profile picture is already taken")
        image_index = free[0]

    key = SymmetricKeyManager.generate()
    user = IdentityProofService.create_login(snapshot, args.username, image_index, key)
    await write_snapshot(path, add_user(snapshot, user))

    _print_error("Keep this log in key. It is the only way back into the thread.")
    _print_line(SymmetricKeyManager.export_text(key))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yarn-capsule",
        description=f"{APP_NAME} - serverless, end-to-end encrypted threads in a URL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("\n\n", 1)[1] if __doc__ else None,
    )
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {__version__}")
    parser.add_argument("--config", type=str, default=None, help="Path to config.toml")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    keygen = sub.add_parser("keygen", help="Generate a new log in key")
    keygen.set_defaults(handler=_cmd_keygen)

    share = sub.add_parser("share", help="Produce a share link for a snapshot file")
    share.add_argument("snapshot", help="Snapshot JSON file")
    share.add_argument("--base-url", default=None, help="Base URL for the link")
    share.add_argument("--fragment-only", action="store_true", help="Print only the fragment")
    share.set_defaults(handler=_cmd_share)

    open_ = sub.add_parser("open", help="Decode a share link or keyed fragment")
    open_.add_argument("link", help="Share link, '#fragment' or fragment text")
    open_.add_argument("-o", "--output", default=None, help="Write the snapshot to this file")
    open_.add_argument("--summary", action="store_true", help="Show posts as a table")
    open_.set_defaults(handler=_cmd_open)

    proof = sub.add_parser("proof", help="Derive the identity proof for a username")
    proof.add_argument("key", help="Log in key")
    proof.add_argument("username")
    proof.set_defaults(handler=_cmd_proof)

    login = sub.add_parser("login", help="Find which user a log in key belongs to")
    login.add_argument("link", help="Share link or keyed fragment")
    login.add_argument("key", help="Log in key")
    login.set_defaults(handler=_cmd_login)

    create_user = sub.add_parser("create-user", help="Add a user to a snapshot file")
    create_user.add_argument("snapshot", help="Snapshot JSON file (updated in place)")
    create_user.add_argument("username")
    create_user.add_argument("--image", type=int, default=None, help="Profile picture index")
    create_user.set_defaults(handler=_cmd_create_user)

    config_ = sub.add_parser("config", help="Show or change settings")
    config_sub = config_.add_subparsers(dest="action", required=True)
    config_sub.add_parser("show", help="Print the effective configuration")
    config_set = config_sub.add_parser("set", help="Store a setting in the config file")
    config_set.add_argument("section")
    config_set.add_argument("key")
    config_set.add_argument("value")
    config_.set_defaults(handler=_cmd_config, needs_codec=False)

    return parser


async def async_main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run one command. Returns the exit status."""
    args = build_parser().parse_args(argv)

    try:
        config = Config(Path(args.config) if args.config else None)
        configure_logging(config, args.debug)
        codec = None
        if getattr(args, "needs_codec", True):
            codec = CapsuleCodec(config.get("capsule", "compression"))
        return await args.handler(args, codec, config)
    except YarnError as e:
        logger.debug(f"Command failed: {e.to_dict()}")
        _print_error(f"Error: {e}")
        return 1
    except OSError as e:
        _print_error(f"Error: {e}")
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point - runs async_main."""
    return asyncio.run(async_main(argv))


if __name__ == "__main__":
    sys.exit(main())
