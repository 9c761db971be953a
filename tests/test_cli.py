"""
Tests for the command-line interface
"""

import io
import json
import logging
from unittest.mock import patch

import pytest

from bcwallet_sdk.cli import _JSONFormatter, create_parser, main
from bcwallet_sdk.crypto.keys import MAINNET, TESTNET, RecoveredKey, scalar_to_address

from conftest import SCALAR_ONE_UNCOMPRESSED, base58_scalar, double_encrypted_wallet, v1_backup, v2_backup

try:
    import keyring
    from keyring.backends import fail
    KEYRING_AVAILABLE_FOR_TESTS = True
except ImportError:
    KEYRING_AVAILABLE_FOR_TESTS = False

SCALAR_ONE_WIF = "5HpHagT65TZzG1PH3CSu63k8DbpvD8s5ip4nEB3kEsreAnchuDf"


@pytest.fixture(autouse=True)
def isolated_cli():
    """Keep tests away from real config files and the root logger"""
    with patch('bcwallet_sdk.config.import_config.DEFAULT_CONFIG_PATHS', []), \
            patch('bcwallet_sdk.cli.setup_logging'):
        yield


class TestParser:
    """Test cases for argument parsing"""

    def test_import_arguments(self):
        args = create_parser().parse_args(['import', 'wallet.json', '--password-stdin', '--testnet', '--progress'])

        assert args.command == 'import'
        assert args.backup_file == 'wallet.json'
        assert args.password_stdin and args.testnet and args.progress
        assert args.store is None

    def test_storage_arguments(self):
        args = create_parser().parse_args(['storage', '--storage-dir', '/tmp/x', 'delete', '1abc', '--confirm'])

        assert args.storage_command == 'delete'
        assert args.address == '1abc'
        assert args.confirm is True

    def test_no_command(self, capsys):
        assert main([]) == 1


class TestImportCommand:
    """Test cases for the import command"""

    def write_backup(self, tmp_path, text):
        path = tmp_path / "wallet.aes.json"
        path.write_text(text)
        return str(path)

    def test_password_from_stdin(self, tmp_path, simple_wallet, capsys, monkeypatch):
        path = self.write_backup(tmp_path, v2_backup(simple_wallet, "pw"))
        monkeypatch.setattr('sys.stdin', io.StringIO("pw\n"))

        assert main(['import', path, '--password-stdin', '--show-keys']) == 0

        out = capsys.readouterr().out
        assert "Imported: 1" in out
        assert "Skipped (watch-only): 1" in out
        assert f"{SCALAR_ONE_UNCOMPRESSED} {SCALAR_ONE_WIF}  # savings" in out

    def test_prompts_for_password(self, tmp_path, simple_wallet, capsys):
        path = self.write_backup(tmp_path, v1_backup(simple_wallet, "pw"))

        with patch('bcwallet_sdk.cli.getpass.getpass', return_value="pw") as mock_getpass:
            assert main(['import', path]) == 0

        mock_getpass.assert_called_once()
        out = capsys.readouterr().out
        assert "Imported: 1" in out
        assert SCALAR_ONE_WIF not in out

    def test_prompts_for_second_password(self, tmp_path, capsys, monkeypatch):
        wallet = double_encrypted_wallet([1], "shared-key", "second")
        path = self.write_backup(tmp_path, v2_backup(wallet, "main"))
        monkeypatch.setattr('sys.stdin', io.StringIO("main\n"))

        with patch('bcwallet_sdk.cli.getpass.getpass', return_value="second"):
            assert main(['import', path, '--password-stdin']) == 0

        assert "Imported: 1" in capsys.readouterr().out

    def test_progress(self, tmp_path, simple_wallet, capsys, monkeypatch):
        path = self.write_backup(tmp_path, v2_backup(simple_wallet, "pw"))
        monkeypatch.setattr('sys.stdin', io.StringIO("pw\n"))

        assert main(['import', path, '--password-stdin', '--progress']) == 0

        err = capsys.readouterr().err
        assert f"[  0%] {SCALAR_ONE_UNCOMPRESSED}" in err
        assert "[ 50%]" in err

    def test_wrong_password(self, tmp_path, simple_wallet, capsys, monkeypatch):
        path = self.write_backup(tmp_path, v2_backup(simple_wallet, "pw"))
        monkeypatch.setattr('sys.stdin', io.StringIO("nope\n"))

        assert main(['import', path, '--password-stdin']) == 1
        assert "Decryption failed" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main(['import', str(tmp_path / "missing.json"), '--password-stdin']) == 1
        assert "Backup file not found" in capsys.readouterr().err

    def test_keyboard_interrupt(self, tmp_path, simple_wallet, capsys):
        path = self.write_backup(tmp_path, v2_backup(simple_wallet, "pw"))

        with patch('bcwallet_sdk.cli.getpass.getpass', side_effect=KeyboardInterrupt):
            assert main(['import', path]) == 130


class TestStorageCommands:
    """Test cases for storing keys and the storage command"""

    def test_import_to_secure_store_then_manage(self, tmp_path, simple_wallet, capsys, monkeypatch):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({'storage': {'use_keyring': False}}))
        storage_dir = str(tmp_path / "keys")
        backup = tmp_path / "wallet.aes.json"
        backup.write_text(v2_backup(simple_wallet, "pw"))
        monkeypatch.setattr('sys.stdin', io.StringIO("pw\n"))

        with patch('bcwallet_sdk.cli.getpass.getpass', return_value="file-passphrase"):
            assert main(['--config', str(config_path), 'import', str(backup), '--password-stdin',
                         '--store', 'secure', '--storage-dir', storage_dir]) == 0
        capsys.readouterr()

        assert main(['--config', str(config_path), 'storage', '--storage-dir', storage_dir, 'list']) == 0
        assert SCALAR_ONE_UNCOMPRESSED in capsys.readouterr().out

        with patch('bcwallet_sdk.cli.getpass.getpass', return_value="file-passphrase"):
            assert main(['--config', str(config_path), 'storage', '--storage-dir', storage_dir,
                         'load', SCALAR_ONE_UNCOMPRESSED]) == 0
        assert SCALAR_ONE_WIF in capsys.readouterr().out

        assert main(['--config', str(config_path), 'storage', '--storage-dir', storage_dir,
                     'delete', SCALAR_ONE_UNCOMPRESSED, '--confirm']) == 0
        assert main(['--config', str(config_path), 'storage', '--storage-dir', storage_dir, 'list']) == 0
        assert "No keys stored" in capsys.readouterr().out

    def test_load_missing(self, tmp_path, capsys):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({'storage': {'use_keyring': False}}))

        assert main(['--config', str(config_path), 'storage', '--storage-dir', str(tmp_path),
                     'load', '1nothing']) == 1
        assert "No key stored" in capsys.readouterr().err

    def test_delete_cancelled(self, tmp_path, capsys):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({'storage': {'use_keyring': False}}))

        with patch('builtins.input', return_value='n'):
            assert main(['--config', str(config_path), 'storage', '--storage-dir', str(tmp_path),
                         'delete', '1abc']) == 0
        assert "Operation cancelled" in capsys.readouterr().out

    def test_testnet_key_loads_as_testnet_wif(self, tmp_path, capsys, monkeypatch):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({'storage': {'use_keyring': False}}))
        storage_dir = str(tmp_path / "keys")
        address = scalar_to_address(8, True, TESTNET)
        backup = tmp_path / "wallet.aes.json"
        backup.write_text(v2_backup({'keys': [{'addr': address, 'priv': base58_scalar(8)}]}, "pw"))
        monkeypatch.setattr('sys.stdin', io.StringIO("pw\n"))

        with patch('bcwallet_sdk.cli.getpass.getpass', return_value="file-passphrase"):
            assert main(['--config', str(config_path), 'import', str(backup), '--password-stdin',
                         '--testnet', '--store', 'secure', '--storage-dir', storage_dir]) == 0
        capsys.readouterr()

        with patch('bcwallet_sdk.cli.getpass.getpass', return_value="file-passphrase"):
            assert main(['--config', str(config_path), 'storage', '--storage-dir', storage_dir,
                         'load', address]) == 0

        key = RecoveredKey(private_scalar=8, compressed=True, address=address)
        out = capsys.readouterr().out
        assert f"{address} {key.to_wif(TESTNET)}" in out
        assert key.to_wif(MAINNET) not in out

    @pytest.mark.skipif(not KEYRING_AVAILABLE_FOR_TESTS, reason="Keyring not available")
    def test_fail_keyring_backend_prompts_for_passphrase(self, tmp_path, simple_wallet, capsys, monkeypatch):
        storage_dir = tmp_path / "keys"
        backup = tmp_path / "wallet.aes.json"
        backup.write_text(v2_backup(simple_wallet, "pw"))
        monkeypatch.setattr('sys.stdin', io.StringIO("pw\n"))

        previous = keyring.get_keyring()
        keyring.set_keyring(fail.Keyring())
        try:
            with patch('bcwallet_sdk.cli.getpass.getpass', return_value="file-passphrase") as mock_getpass:
                assert main(['import', str(backup), '--password-stdin',
                             '--store', 'secure', '--storage-dir', str(storage_dir)]) == 0
            mock_getpass.assert_called_once()
            assert len(list(storage_dir.glob("*.key"))) == 1
            capsys.readouterr()

            with patch('bcwallet_sdk.cli.getpass.getpass', return_value="file-passphrase"):
                assert main(['storage', '--storage-dir', str(storage_dir), 'load', SCALAR_ONE_UNCOMPRESSED]) == 0
            assert SCALAR_ONE_WIF in capsys.readouterr().out
        finally:
            keyring.set_keyring(previous)

    def test_invalid_log_level_option(self, capsys):
        assert main(['--log-level', 'LOUD', 'storage', 'list']) == 1
        assert "Unsupported log level" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path, capsys):
        config_path = tmp_path / "config.json"
        config_path.write_text('{"network": "regtest"}')

        assert main(['--config', str(config_path), 'storage', 'list']) == 1
        assert "Unsupported network" in capsys.readouterr().err


class TestLogging:
    """Test cases for log formatting"""

    def test_json_formatter(self):
        record = logging.LogRecord('bcwallet_sdk.importer', logging.INFO, __file__, 1,
                                   "Wallet import finished: %d imported", (2,), None)
        log_obj = json.loads(_JSONFormatter().format(record))

        assert log_obj['level'] == 'INFO'
        assert log_obj['logger'] == 'bcwallet_sdk.importer'
        assert log_obj['msg'] == "Wallet import finished: 2 imported"
        assert 'ts' in log_obj
