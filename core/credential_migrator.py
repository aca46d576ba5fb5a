# =============================================================================
# core/credential_migrator.py - AuthenticationAuthority migration
# =============================================================================

import logging
from typing import List

from core.attribute_store import AttributeStore

AUTH_AUTHORITY_ATTRIBUTE = "AuthenticationAuthority"
KERBEROS_MARKER = "Kerberosv5"
CACHED_LOGIN_MARKER = "LocalCachedUser"
SHADOW_HASH_MARKER = "ShadowHash"

DIRECTORY_AUTH_MARKERS = (KERBEROS_MARKER, CACHED_LOGIN_MARKER)


def is_directory_authenticator(descriptor: str) -> bool:
    """True for Kerberos and cached-login entries, never for the shadow hash"""
    if SHADOW_HASH_MARKER in descriptor:
        return False
    return any(marker in descriptor for marker in DIRECTORY_AUTH_MARKERS)


class CredentialMigrator:
    """
    Drops the directory authenticators from AuthenticationAuthority so the
    cached ShadowHash becomes the account's only way in.

    Values are deleted one at a time. Deleting the whole attribute makes
    macOS 10.14.4 and later remove ShadowHashData along with it, which locks
    the user out.
    """

    def __init__(self, store: AttributeStore):
        self.store = store
        self.logger = logging.getLogger(self.__class__.__name__)

    def migrate(self, username: str) -> List[str]:
        """Delete directory authenticators by value, returns those removed"""
        authorities = self.store.read_values(username, AUTH_AUTHORITY_ATTRIBUTE)
        targets = [descriptor for descriptor in authorities if is_directory_authenticator(descriptor)]

        if not targets:
            self.logger.info(f"No directory authenticators found for {username}")
            return []

        for descriptor in targets:
            self.store.delete_value(username, AUTH_AUTHORITY_ATTRIBUTE, descriptor)
            self.logger.debug(f"Removed {descriptor!r} from {AUTH_AUTHORITY_ATTRIBUTE} of {username}")

        if not any(SHADOW_HASH_MARKER in descriptor for descriptor in authorities):
            self.logger.warning(f"{username} has no cached {SHADOW_HASH_MARKER} authenticator")

        return targets
