# =============================================================================
# core/stripper.py - Removal of directory linkage attributes
# =============================================================================

import logging
from typing import List

from core.attribute_store import AttributeStore, AttributeStoreError

# Attributes that mark a record as an Active Directory mobile account
DIRECTORY_LINKAGE_ATTRIBUTES = (
    "cached_groups",
    "cached_auth_policy",
    "CopyTimestamp",
    "AltSecurityIdentities",
    "SMBPrimaryGroupSID",
    "OriginalAuthenticationAuthority",
    "OriginalNodeName",
    "SMBSID",
    "SMBScriptPath",
    "SMBPasswordLastSet",
    "SMBGroupRID",
    "PrimaryNTDomain",
    "AppleMetaRecordName",
    "MCXSettings",
    "MCXFlags",
)


class AttributeStripper:
    """Deletes the directory linkage attributes from an account record"""

    def __init__(self, store: AttributeStore, attributes=DIRECTORY_LINKAGE_ATTRIBUTES):
        self.store = store
        self.attributes = tuple(attributes)
        self.logger = logging.getLogger(self.__class__.__name__)

    def strip(self, username: str) -> List[str]:
        """Best-effort delete of every linkage attribute, returns those removed"""
        removed = []

        for attribute in self.attributes:
            try:
                self.store.delete_attribute(username, attribute)
            except AttributeStoreError as e:
                # Most records only carry a subset of these
                self.logger.debug(f"Skipped {attribute} for {username}: {e}")
                continue
            removed.append(attribute)

        self.logger.info(f"Removed {len(removed)} directory attributes from {username}")
        return removed
