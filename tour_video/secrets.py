"""
API keys from the OS keychain, with environment fallback.

A key stored with `set_api_key` wins over the environment, so a developer
machine and a container running off `.env` both work unchanged.

    from tour_video.secrets import get_api_key
    key = get_api_key("ELEVENLABS_API_KEY")
"""

import logging
import os
from typing import Dict, Optional, Tuple

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "tour-video"

# Keys the pipeline knows how to use
KNOWN_KEYS = {
    "TURAI_API_KEY": "Turai API key (postcards, TTS)",
    "ELEVENLABS_API_KEY": "ElevenLabs API key (narration)",
}


def _read_keychain(key_name: str) -> Optional[str]:
    try:
        return keyring.get_password(SERVICE_NAME, key_name) or None
    except KeyringError as e:
        # No backend (headless CI, containers) is normal
        logger.debug(f"Keychain unavailable for {key_name}: {e}")
        return None


def _lookup(key_name: str, fallback_to_env: bool = True) -> Tuple[Optional[str], str]:
    """(value, source) where source is "keychain", "env" or "not_set"."""
    value = _read_keychain(key_name)
    if value:
        return value, "keychain"
    if fallback_to_env and os.environ.get(key_name):
        return os.environ[key_name], "env"
    return None, "not_set"


def get_api_key(key_name: str, fallback_to_env: bool = True) -> Optional[str]:
    """
    Resolve an API key.

    Args:
        key_name: e.g. "ELEVENLABS_API_KEY"
        fallback_to_env: Also consult os.environ when the keychain has nothing

    Returns:
        The key, or None
    """
    value, source = _lookup(key_name, fallback_to_env)
    if value:
        logger.debug(f"{key_name} resolved from {source}")
    return value


def set_api_key(key_name: str, value: str) -> bool:
    """Save a key to the keychain. False if the backend refused."""
    try:
        keyring.set_password(SERVICE_NAME, key_name, value)
    except KeyringError as e:
        logger.error(f"Could not save {key_name} to keychain: {e}")
        return False
    logger.info(f"Saved {key_name} to keychain")
    return True


def delete_api_key(key_name: str) -> bool:
    """Remove a key from the keychain. False if it was not there."""
    try:
        keyring.delete_password(SERVICE_NAME, key_name)
    except PasswordDeleteError:
        logger.warning(f"No keychain entry for {key_name}")
        return False
    except KeyringError as e:
        logger.error(f"Could not delete {key_name} from keychain: {e}")
        return False
    logger.info(f"Removed {key_name} from keychain")
    return True


def list_api_keys() -> Dict[str, str]:
    """Where each known key would be read from: "keychain", "env" or "not_set"."""
    return {name: _lookup(name)[1] for name in KNOWN_KEYS}
