# =============================================================================
# core/attribute_store.py - Local directory node attribute store
# =============================================================================

import logging
import plistlib
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from xml.parsers.expat import ExpatError

from utils.commands import CommandRunner

DSCL = "/usr/bin/dscl"
LOCAL_NODE = "."
USERS_PATH = "/Users"


class AttributeStoreError(Exception):
    """Raised when the directory store rejects a read or write"""


class AttributeStore(ABC):
    """Per-account record store keyed by username"""

    @abstractmethod
    def read_values(self, username: str, attribute: str) -> List[str]:
        """Return every value of an attribute, empty when absent"""
        pass

    @abstractmethod
    def delete_attribute(self, username: str, attribute: str) -> None:
        """Delete a whole attribute from the account record"""
        pass

    @abstractmethod
    def delete_value(self, username: str, attribute: str, value: str) -> None:
        """Delete one value from a multi-valued attribute"""
        pass

    @abstractmethod
    def list_records(self) -> List[str]:
        """List the record names of every user on the node"""
        pass

    def read_attribute(self, username: str, attribute: str) -> str:
        """Return the first value of an attribute, empty when absent"""
        values = self.read_values(username, attribute)
        return values[0] if values else ""


class DsclAttributeStore(AttributeStore):
    """Attribute store backed by dscl against the local node"""

    def __init__(self, runner: Optional[CommandRunner] = None, node: str = LOCAL_NODE):
        self.runner = runner or CommandRunner()
        self.node = node
        self.logger = logging.getLogger(__name__)

    def _record_path(self, username: str) -> str:
        return f"{USERS_PATH}/{username}"

    def read_values(self, username: str, attribute: str) -> List[str]:
        result = self.runner.run(
            [DSCL, "-plist", self.node, "-read", self._record_path(username), attribute]
        )
        if not result.ok:
            self.logger.debug(f"No {attribute} for {username}: {result.stderr.strip()}")
            return []

        try:
            record = plistlib.loads(result.stdout.encode("utf-8"))
        except (plistlib.InvalidFileException, ExpatError) as e:
            raise AttributeStoreError(f"Unreadable dscl output for {username} {attribute}: {e}")

        return self._values_for(record, attribute)

    @staticmethod
    def _values_for(record: Dict[str, Any], attribute: str) -> List[str]:
        """Pick the attribute out of a dscl plist, whatever its type prefix"""
        for key, values in record.items():
            if key == attribute or key.split(":", 1)[-1] == attribute:
                if not isinstance(values, list):
                    values = [values]
                return [v.decode("utf-8", "replace") if isinstance(v, bytes) else str(v)
                        for v in values]
        return []

    def delete_attribute(self, username: str, attribute: str) -> None:
        result = self.runner.run(
            [DSCL, self.node, "-delete", self._record_path(username), attribute]
        )
        if not result.ok:
            raise AttributeStoreError(
                f"Could not delete {attribute} from {username}: {result.stderr.strip()}"
            )

    def delete_value(self, username: str, attribute: str, value: str) -> None:
        result = self.runner.run(
            [DSCL, "-plist", self.node, "-delete", self._record_path(username), attribute, value]
        )
        if not result.ok:
            raise AttributeStoreError(
                f"Could not delete {attribute} value from {username}: {result.stderr.strip()}"
            )

    def list_records(self) -> List[str]:
        result = self.runner.run([DSCL, self.node, "-list", USERS_PATH])
        if not result.ok:
            raise AttributeStoreError(f"Could not list users: {result.stderr.strip()}")
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]
