"""
Backup file generation detection for Blockchain wallet backups

Two generations of backup exist:

- V1: the whole file is the base64 ciphertext; the iteration count is
  implicitly 10.
- V2: a JSON envelope ``{"pbkdf2_iterations": n, "payload": "<base64>"}``.
  The service's configuration export wraps the wallet file once more inside
  ``payload``: a V2 envelope as a JSON string, or V1 base64 as is.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..exceptions import (
    BackupError,
    FormatDetectedNeedsPassword,
    MalformedDocument,
    PasswordMissing,
    UnsupportedBackupVersion,
)

logger = logging.getLogger(__name__)

# Constants for backup parsing
V1_DEFAULT_ITERATIONS = 10
MAX_SUPPORTED_WALLET_VERSION = 3
MAX_BACKUP_FILE_SIZE = 64 * 2**20  # typical backups are a few KB


class BackupGeneration(Enum):
    """Backup encoding generation"""
    V1 = 'v1'
    V2 = 'v2'


@dataclass(frozen=True)
class BackupPayload:
    """
    Encrypted payload extracted from a backup file

    Attributes:
        generation: Backup encoding generation
        iteration_count: PBKDF2 iterations for the outer layer
        ciphertext_base64: Base64 text of ``iv || ciphertext``
    """
    generation: BackupGeneration
    iteration_count: int
    ciphertext_base64: str


def _parse_envelope(data: Dict[str, Any], v1_iterations: int = V1_DEFAULT_ITERATIONS) -> BackupPayload:
    payload = data.get('payload')
    if not isinstance(payload, str):
        raise MalformedDocument("Backup envelope is missing 'payload'", "MISSING_PAYLOAD")

    if 'pbkdf2_iterations' not in data:
        # Configuration export: the wallet file is inside 'payload', either as a
        # JSON envelope or as bare V1 base64
        try:
            inner = json.loads(payload)
        except json.JSONDecodeError:
            return BackupPayload(
                generation=BackupGeneration.V1,
                iteration_count=v1_iterations,
                ciphertext_base64=payload.strip(),
            )
        if isinstance(inner, dict) and 'pbkdf2_iterations' in inner:
            return _parse_envelope(inner, v1_iterations)
        raise MalformedDocument("Backup envelope is missing 'pbkdf2_iterations'", "MISSING_ITERATIONS")

    version = data.get('version')
    if isinstance(version, int) and version > MAX_SUPPORTED_WALLET_VERSION:
        raise UnsupportedBackupVersion(f"Unsupported wallet backup version: {version}", "UNSUPPORTED_BACKUP_VERSION")

    iterations = data['pbkdf2_iterations']
    if not isinstance(iterations, int) or isinstance(iterations, bool) or iterations < 1:
        raise MalformedDocument(f"Invalid pbkdf2_iterations: {iterations!r}", "INVALID_ITERATIONS")

    return BackupPayload(
        generation=BackupGeneration.V2,
        iteration_count=iterations,
        ciphertext_base64=payload,
    )


def detect_payload(text: str, v1_iterations: int = V1_DEFAULT_ITERATIONS) -> BackupPayload:
    """
    Determine the backup generation without looking at any password

    Raises:
        MalformedDocument: If the text is a JSON object of the wrong shape
        UnsupportedBackupVersion: If the envelope is newer than supported
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    # A bare base64 string occasionally parses as a JSON number
    if isinstance(data, dict):
        return _parse_envelope(data, v1_iterations)

    return BackupPayload(
        generation=BackupGeneration.V1,
        iteration_count=v1_iterations,
        ciphertext_base64=text.strip(),
    )


def extract_payload(text: str, password: Optional[str] = None,
                    v1_iterations: int = V1_DEFAULT_ITERATIONS) -> BackupPayload:
    """
    Extract the encrypted payload and iteration count from a backup

    Args:
        text: Raw backup file contents
        password: Main password, if already known
        v1_iterations: Iteration count assumed for V1 backups

    Returns:
        BackupPayload: The payload to decrypt

    Raises:
        FormatDetectedNeedsPassword: V2 envelope recognized and no password given
        PasswordMissing: V1 backup and no password given
        MalformedDocument: If a JSON envelope lacks required fields
    """
    payload = detect_payload(text, v1_iterations)
    logger.info(f"Detected {payload.generation.name} backup ({payload.iteration_count} PBKDF2 iterations)")

    if password is None:
        if payload.generation is BackupGeneration.V2:
            raise FormatDetectedNeedsPassword(details={'iterations': payload.iteration_count})
        raise PasswordMissing()

    return payload


def read_backup_file(file_path: Union[str, Path]) -> str:
    """
    Read a backup file as text

    Raises:
        BackupError: If the file cannot be read
    """
    path = Path(file_path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read(MAX_BACKUP_FILE_SIZE + 1)
    except FileNotFoundError:
        raise BackupError(f"Backup file not found: {path}", "BACKUP_FILE_NOT_FOUND")
    except PermissionError:
        raise BackupError(f"Permission denied accessing backup file: {path}", "BACKUP_FILE_PERMISSION_DENIED")
    except (OSError, UnicodeDecodeError) as e:
        raise BackupError(f"Failed to read backup file: {e}", "BACKUP_FILE_READ_FAILED") from e

    if len(text) > MAX_BACKUP_FILE_SIZE:
        raise BackupError(f"Backup file is too large: {path}", "BACKUP_FILE_TOO_LARGE")
    return text
