"""
Second password layer for double encrypted Blockchain wallets

When ``double_encryption`` is enabled every ``priv`` field is itself a
payload of the same scheme as the backup file, encrypted with the password
``sharedKey + second_password``.
"""

import hashlib
import logging
import secrets
from typing import Optional

from ..document import WalletDocument
from ..exceptions import (
    MalformedDocument,
    SecondaryPasswordIncorrect,
    SecondaryPasswordRequired,
)
from .cipher import derive_and_decrypt

logger = logging.getLogger(__name__)

DEFAULT_SECOND_PASSWORD_ITERATIONS = 10


def compose_password(shared_key: str, second_password: str) -> str:
    return shared_key + second_password


def _iterated_sha256(text: str, iterations: int) -> str:
    running_hash = text.encode('utf-8')
    for _ in range(iterations):
        running_hash = hashlib.sha256(running_hash).digest()
    return running_hash.hex()


def second_password_hash(shared_key: str, second_password: str, iterations: int) -> str:
    """Iterated SHA-256 of ``sharedKey + password`` as stored in ``dpasswordhash``"""
    return _iterated_sha256(compose_password(shared_key, second_password), iterations)


class SecondPasswordUnwrapper:
    """
    Removes the second encryption layer from private key fields

    Construct with :meth:`from_document`; the constructor takes the already
    resolved parameters.
    """

    def __init__(self, shared_key: str, second_password: str, iterations: int = DEFAULT_SECOND_PASSWORD_ITERATIONS):
        self.shared_key = shared_key
        self.iterations = iterations
        self._password = compose_password(shared_key, second_password)

    @classmethod
    def from_document(cls,
                      document: WalletDocument,
                      second_password: Optional[str],
                      default_iterations: int = DEFAULT_SECOND_PASSWORD_ITERATIONS,
                      verify_hash: bool = True) -> 'SecondPasswordUnwrapper':
        """
        Build an unwrapper for a double encrypted wallet

        Raises:
            SecondaryPasswordRequired: If no second password was supplied
            MalformedDocument: If the wallet has no ``sharedKey``
            SecondaryPasswordIncorrect: If ``dpasswordhash`` is present and
                does not match the supplied password
        """
        if second_password is None:
            raise SecondaryPasswordRequired()

        if not document.shared_key:
            raise MalformedDocument(
                "Double encrypted wallet is missing 'sharedKey'",
                "MISSING_SHARED_KEY"
            )

        iterations = document.second_iterations or default_iterations
        unwrapper = cls(document.shared_key, second_password, iterations)

        if verify_hash and document.second_password_hash:
            unwrapper.verify(document.second_password_hash)

        return unwrapper

    def verify(self, expected_hash: str) -> None:
        """Check the second password against the wallet's stored hash"""
        actual = _iterated_sha256(self._password, self.iterations)
        if not secrets.compare_digest(actual.encode('ascii'), expected_hash.strip().lower().encode('utf-8')):
            raise SecondaryPasswordIncorrect("Second password is incorrect", "SECOND_PASSWORD_INCORRECT")
        logger.debug("Second password verified against wallet hash")

    def unwrap(self, private_field: str) -> str:
        """Decrypt one ``priv`` field to its Base58 plaintext"""
        return derive_and_decrypt(private_field, self._password, self.iterations)
