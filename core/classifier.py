# =============================================================================
# core/classifier.py - Mobile vs. local account classification
# =============================================================================

import logging
from typing import Optional

from core.attribute_store import AttributeStore
from core.models import Classification

ORIGIN_ATTRIBUTE = "OriginalNodeName"
UID_ATTRIBUTE = "UniqueID"
DIRECTORY_MARKER = "Active Directory"


def classify_origin(raw_origin: Optional[str]) -> Classification:
    """Classify an account from the raw value of its origin node"""
    if not raw_origin or not raw_origin.strip():
        return Classification.LOCAL
    if DIRECTORY_MARKER in raw_origin:
        return Classification.DIRECTORY_BACKED
    return Classification.UNKNOWN


class AccountClassifier:
    """Reads an account's origin node and classifies it"""

    def __init__(self, store: AttributeStore):
        self.store = store
        self.logger = logging.getLogger(self.__class__.__name__)

    def classify(self, username: str) -> Classification:
        raw_origin = self.store.read_attribute(username, ORIGIN_ATTRIBUTE)
        classification = classify_origin(raw_origin)

        if classification is Classification.DIRECTORY_BACKED:
            uid = self.store.read_attribute(username, UID_ATTRIBUTE)
            self.logger.info(f"Found {username} has a mobile account")
            self.logger.info(f"{ORIGIN_ATTRIBUTE}: {raw_origin}")
            self.logger.info(f"{UID_ATTRIBUTE}: {uid}")
        elif classification is Classification.UNKNOWN:
            self.logger.error(f"Unable to determine user type of {username} ({ORIGIN_ATTRIBUTE}: {raw_origin})")

        return classification
