# =============================================================================
# core/accounts.py - Candidate account enumeration
# =============================================================================

import logging
from typing import List

from core.attribute_store import AttributeStore

EXCLUDED_ACCOUNTS = frozenset({"root", "daemon", "nobody", "adobe"})


def is_candidate(username: str) -> bool:
    """System and service accounts are never converted"""
    return bool(username) and not username.startswith("_") and username not in EXCLUDED_ACCOUNTS


def list_candidate_usernames(store: AttributeStore) -> List[str]:
    """Users on the local node that may be mobile accounts"""
    logger = logging.getLogger(__name__)

    records = store.list_records()
    candidates = [name for name in records if is_candidate(name)]

    logger.debug(f"Found {len(candidates)} candidate accounts out of {len(records)} records")
    return candidates
