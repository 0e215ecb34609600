"""
sftp-remotefs - Main Entry Point

Command-line front end for RemoteFileClient: inspect and change files and
directory trees on an SFTP server.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config
from .errors import ConnectionFailed, MissingCredentials, RemoteFSError
from .logger import setup_logging
from .permissions import ModeBits
from .sftp_client import RemoteFileClient

logger = logging.getLogger(__name__)


def parse_mode(text: str) -> ModeBits:
    """Parse an octal mode ("755", "0o4755") or an rwx string ("rwxr-xr-x")."""
    try:
        return ModeBits(int(text, 8) if not text.startswith("0o") else int(text, 0))
    except ValueError:
        return ModeBits.from_string(text)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="sftp-remotefs",
        description="sftp-remotefs - Manage files on an SFTP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sftp-remotefs --host example.org --user me --key-file ~/.ssh/id_ed25519 ls -l /upload
  sftp-remotefs --config remotefs.ini mkdir -p /upload/a/b/c
  sftp-remotefs --config remotefs.ini put report.pdf /upload/report.pdf
  sftp-remotefs --config remotefs.ini chmod 640 /upload/report.pdf
  sftp-remotefs --config remotefs.ini rmdir -r /upload/a
        """,
    )

    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--host", help="SFTP Host")
    parser.add_argument("--port", type=int, help="SFTP Port")
    parser.add_argument("--user", help="SFTP Username")
    parser.add_argument("--password", help="SFTP Password")
    parser.add_argument("--key-file", help="Path to SSH private key")
    parser.add_argument("--key-passphrase", help="Passphrase for encrypted SSH key")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    stat_parser = subparsers.add_parser("stat", help="Show metadata of a path")
    stat_parser.add_argument("path")

    ls_parser = subparsers.add_parser("ls", help="List a directory")
    ls_parser.add_argument("path", nargs="?", default=".")
    ls_parser.add_argument("-l", dest="long", action="store_true", help="Long listing")

    get_parser = subparsers.add_parser("get", help="Download a file")
    get_parser.add_argument("remote")
    get_parser.add_argument("local", nargs="?")

    put_parser = subparsers.add_parser("put", help="Upload a file")
    put_parser.add_argument("local")
    put_parser.add_argument("remote")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a directory")
    mkdir_parser.add_argument("path")
    mkdir_parser.add_argument("-p", dest="recursive", action="store_true", help="Create parents")

    rm_parser = subparsers.add_parser("rm", help="Delete a file or symlink")
    rm_parser.add_argument("path")

    rmdir_parser = subparsers.add_parser("rmdir", help="Delete a directory")
    rmdir_parser.add_argument("path")
    rmdir_parser.add_argument(
        "-r", dest="recursive", action="store_true", help="Delete contents too"
    )

    mv_parser = subparsers.add_parser("mv", help="Move a file or directory")
    mv_parser.add_argument("source")
    mv_parser.add_argument("target")

    chmod_parser = subparsers.add_parser("chmod", help="Change permissions")
    chmod_parser.add_argument("mode", help="Octal mode (755) or rwx string (rwxr-xr-x)")
    chmod_parser.add_argument("path")

    return parser.parse_args(argv)


def run_command(client: RemoteFileClient, args) -> int:
    """Execute one sub-command against a connected client."""
    if args.command == "stat":
        stats = client.stat(args.path)
        print(f"{stats.render()} {stats.uid:>5} {stats.gid:>5} {stats.size:>10} {args.path}")
        print(f"     Modified: {stats.modified_at.isoformat(sep=' ')}")
        print(f"     Accessed: {stats.accessed_at.isoformat(sep=' ')}")
    elif args.command == "ls":
        if args.long:
            entries = client.list_dir(args.path, detailed=True)
            for entry in sorted(entries, key=lambda e: e.filename):
                stats = entry.stats
                print(
                    f"{stats.render()} {stats.uid:>5} {stats.gid:>5} "
                    f"{stats.size:>10} {stats.modified_at:%Y-%m-%d %H:%M} {entry.filename}"
                )
        else:
            for name in sorted(client.list_dir(args.path)):
                print(name)
    elif args.command == "get":
        local = Path(args.local or args.remote.rstrip("/").rsplit("/", 1)[-1])
        data = client.get_file(args.remote)
        local.write_bytes(data)
        print(f"[OK] {args.remote} -> {local} ({len(data)} bytes)")
    elif args.command == "put":
        data = Path(args.local).read_bytes()
        client.put_file(args.remote, data)
        print(f"[OK] {args.local} -> {args.remote} ({len(data)} bytes)")
    elif args.command == "mkdir":
        client.create_directory(args.path, recursive=args.recursive)
    elif args.command == "rm":
        client.delete_file(args.path)
    elif args.command == "rmdir":
        client.delete_directory(args.path, recursive=args.recursive)
    elif args.command == "mv":
        client.move(args.source, args.target)
    elif args.command == "chmod":
        mode = parse_mode(args.mode)
        client.set_permissions(args.path, mode)
        print(f"[OK] {args.path} is now {mode}")
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if not args.command:
        print("Usage: sftp-remotefs [connection options] <command> [args]")
        print()
        print("Commands: stat, ls, get, put, mkdir, rm, rmdir, mv, chmod")
        print()
        print("Run 'sftp-remotefs --help' for more information.")
        return 1

    client = None
    try:
        config = load_config(
            config_path=args.config,
            host=args.host,
            port=args.port,
            username=args.user,
            password=args.password,
            key_file=args.key_file,
            key_passphrase=args.key_passphrase,
            debug=args.verbose,
        )
        setup_logging(config.logging)
        from . import __version__

        logger.info("Starting sftp-remotefs v%s", __version__)

        try:
            client = RemoteFileClient.from_config(config)
        except MissingCredentials as e:
            print(f"[ERROR] {e}")
            return 1
        except ConnectionFailed as e:
            print(f"[ERROR] Could not connect to {config.ssh.host}:{config.ssh.port}")
            print(f"        {e}")
            return 1

        return run_command(client, args)

    except ValueError as e:
        # Configuration and mode parsing errors
        print(f"[ERROR] {e}")
        return 1
    except RemoteFSError as e:
        print(f"[ERROR] {e}")
        return 1
    except OSError as e:
        # Local files and key files
        print(f"[ERROR] {e}")
        return 1
    finally:
        if client is not None and client.is_connected():
            try:
                client.end()
            except RemoteFSError as e:
                logger.warning("Error disconnecting: %s", e)


if __name__ == "__main__":
    sys.exit(main() or 0)
