"""
Command-line interface for the Blockchain wallet import SDK
"""

import argparse
import getpass
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from . import __version__
from .config import ImportConfig, LoggingConfig, load_import_config
from .crypto.backup import read_backup_file
from .crypto.keys import TESTNET
from .crypto.storage import InMemoryKeyStore, KeyStore, SecureKeyStorage, keyring_backend_usable
from .exceptions import BcWalletSDKError, DecryptionFailed, StorageError
from .importer import ImportState, WalletImportSession


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger for command-line use"""
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if config.structured:
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog='bcwallet-import',
        description='Import keys from an encrypted Blockchain wallet backup'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Blockchain wallet import SDK {__version__}'
    )
    parser.add_argument('--config', help='Path to a JSON configuration file')
    parser.add_argument('--log-level', help='Override the configured log level')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    setup_import_parser(subparsers)
    setup_storage_parser(subparsers)
    return parser


def setup_import_parser(subparsers):
    """Setup import subcommand."""
    import_parser = subparsers.add_parser('import', help='Decrypt a wallet backup and import its keys')
    import_parser.add_argument('backup_file', help='Path to the wallet backup')
    import_parser.add_argument(
        '--password-stdin',
        action='store_true',
        help='Read the main password from the first line of stdin instead of prompting'
    )
    import_parser.add_argument('--testnet', action='store_true', help='Derive testnet addresses')
    import_parser.add_argument(
        '--store',
        choices=['memory', 'secure'],
        help='Key store receiving the keys (default: from configuration)'
    )
    import_parser.add_argument('--storage-dir', help='Directory for encrypted key files')
    import_parser.add_argument('--show-keys', action='store_true', help='Print recovered keys in WIF')
    import_parser.add_argument('--progress', action='store_true', help='Print per-record progress to stderr')


def setup_storage_parser(subparsers):
    """Setup storage management subcommands."""
    storage_parser = subparsers.add_parser('storage', help='Key storage management')
    storage_parser.add_argument('--storage-dir', help='Directory for encrypted key files')
    storage_subparsers = storage_parser.add_subparsers(dest='storage_command', help='Storage operations')

    storage_subparsers.add_parser('list', help='List addresses with stored keys')

    load_parser = storage_subparsers.add_parser('load', help='Show a stored key')
    load_parser.add_argument('address', help='Address of the stored key')

    delete_parser = storage_subparsers.add_parser('delete', help='Delete a stored key')
    delete_parser.add_argument('address', help='Address of the stored key')
    delete_parser.add_argument('--confirm', action='store_true', help='Skip confirmation prompt')


def _make_storage(config: ImportConfig, storage_dir: Optional[str], passphrase: Optional[str] = None) -> SecureKeyStorage:
    return SecureKeyStorage(
        storage_dir=storage_dir or config.storage.storage_dir,
        use_keyring=config.storage.use_keyring,
        passphrase=passphrase,
    )


def _make_key_store(args, config: ImportConfig) -> KeyStore:
    backend = args.store or config.storage.backend
    if backend == 'secure':
        passphrase = None
        # Without a working OS keyring, keys land in passphrase-encrypted files
        if not config.storage.use_keyring or not keyring_backend_usable():
            passphrase = getpass.getpass("Passphrase for local key files: ")
        return _make_storage(config, args.storage_dir, passphrase)
    return InMemoryKeyStore()


def _print_progress(percent: int, address: str) -> None:
    print(f"[{percent:3d}%] {address}", file=sys.stderr)


def handle_import_command(args, config: ImportConfig) -> int:
    """Handle wallet import."""
    network = TESTNET if args.testnet else config.network_parameters
    backup_text = read_backup_file(args.backup_file)
    key_store = _make_key_store(args, config)

    session = WalletImportSession(
        backup_text,
        key_store,
        progress=_print_progress if args.progress else None,
        network=network,
        config=config,
    )

    password = None
    if args.password_stdin:
        password = sys.stdin.readline().rstrip('\r\n')

    state = session.start(password)
    if state is ImportState.NEED_PRIMARY_PASSWORD:
        state = session.provide_password(getpass.getpass("Wallet password: "))
    if state is ImportState.NEED_SECONDARY_PASSWORD:
        state = session.provide_second_password(getpass.getpass("Second password: "))

    result = session.run()

    print(f"✓ Import complete")
    print(f"  Imported: {result.imported}")
    print(f"  Skipped (watch-only): {result.skipped}")

    if args.show_keys:
        for key in result.keys:
            label = f"  # {key.label}" if key.label else ""
            print(f"{key.address} {key.to_wif(network)}{label}")

    return 0


def handle_storage_command(args, config: ImportConfig) -> int:
    """Handle storage management commands."""
    storage = _make_storage(config, args.storage_dir)

    if args.storage_command == 'list':
        addresses = storage.list_keys()
        if not addresses:
            print("No keys stored")
        else:
            print("Stored keys:")
            for address in addresses:
                print(f"  {address}")
        return 0

    if args.storage_command == 'load':
        try:
            stored = storage.retrieve_key_and_network(args.address)
        except StorageError as e:
            if e.error_code != 'PASSPHRASE_REQUIRED':
                raise
            stored = storage.retrieve_key_and_network(args.address, getpass.getpass("Passphrase for local key files: "))
        if stored is None:
            print(f"No key stored for {args.address}", file=sys.stderr)
            return 1
        key, network = stored
        print(f"{key.address} {key.to_wif(network)}")
        return 0

    if args.storage_command == 'delete':
        if not args.confirm:
            response = input(f"Are you sure you want to delete the key for '{args.address}'? (y/N): ")
            if response.lower() not in ['y', 'yes']:
                print("Operation cancelled")
                return 0
        if storage.delete_key(args.address):
            print(f"Key for {args.address} deleted")
            return 0
        print(f"No key stored for {args.address}", file=sys.stderr)
        return 1

    print("Error: No storage subcommand specified", file=sys.stderr)
    return 1


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the CLI

    Args:
        argv: Command line arguments (None to use sys.argv)

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_import_config(args.config)
        if args.log_level:
            config.logging.level = args.log_level
            config.validate()
        setup_logging(config.logging)

        if args.command == 'import':
            return handle_import_command(args, config)
        elif args.command == 'storage':
            return handle_storage_command(args, config)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except DecryptionFailed as e:
        print(f"Decryption failed: {e}", file=sys.stderr)
        return 1
    except StorageError as e:
        print(f"Storage error: {e}", file=sys.stderr)
        return 1
    except BcWalletSDKError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
