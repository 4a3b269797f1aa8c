"""At-rest encryption for the stored API token.

The token is encrypted with Fernet from the ``cryptography`` library and
written as ``ENC:<fernet-token>``.  Values without the prefix are treated as
plaintext left over from an older config and are re-encrypted on the next
save.

The Fernet key lives in ``<config dir>/.key`` (owner-only permissions), apart
from ``config.json``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

_ENC_PREFIX = "ENC:"

_config_dir = Path(os.environ.get("CHATCLONE_CONFIG_DIR", Path.home() / ".chatclone"))
_key_file = _config_dir / ".key"

_fernet: Optional[Fernet] = None


def set_strict_permissions(filepath: Path) -> None:
    """Restrict *filepath* to owner read/write; failures are only logged."""
    if os.name == "nt":
        return
    try:
        os.chmod(str(filepath), 0o600)
    except FileNotFoundError:
        logger.warning("Cannot set permissions: %s does not exist", filepath)
    except OSError as e:
        logger.warning("Failed to set permissions on %s: %s", filepath, e)


def _get_or_create_key() -> bytes:
    _key_file.parent.mkdir(parents=True, exist_ok=True)

    if _key_file.exists():
        key = _key_file.read_bytes().strip()
        try:
            Fernet(key)
            return key
        except ValueError:
            logger.warning("Existing .key file is invalid, generating a new key")

    key = Fernet.generate_key()
    _key_file.write_bytes(key)
    set_strict_permissions(_key_file)
    logger.info("Generated new encryption key at %s", _key_file)
    return key


def _get_fernet() -> Fernet:
    global _fernet
    if _fernet is None:
        _fernet = Fernet(_get_or_create_key())
    return _fernet


def reset_fernet() -> None:
    global _fernet
    _fernet = None


def encrypt_value(plaintext: str) -> str:
    if not plaintext:
        return plaintext
    token = _get_fernet().encrypt(plaintext.encode("utf-8"))
    return _ENC_PREFIX + token.decode("ascii")


def decrypt_value(ciphertext: str) -> str:
    """Decrypt an ``ENC:`` value; plaintext passes through unchanged.

    A value that no longer decrypts (key rotated or file corrupted) comes
    back as ``""`` so the user is simply asked for the token again.
    """
    if not ciphertext or not ciphertext.startswith(_ENC_PREFIX):
        return ciphertext
    token = ciphertext[len(_ENC_PREFIX):]
    try:
        return _get_fernet().decrypt(token.encode("ascii")).decode("utf-8")
    except InvalidToken:
        logger.warning(
            "Failed to decrypt the stored API token (key may have changed). "
            "Enter the token again in settings."
        )
        return ""
