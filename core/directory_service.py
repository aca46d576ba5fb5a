# =============================================================================
# core/directory_service.py - Machine binding and directory cache control
# =============================================================================

import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from core.attribute_store import DSCL
from core.classifier import DIRECTORY_MARKER
from core.models import BindingState, RefreshToken
from utils.commands import CommandError, CommandRunner
from utils.config import DEFAULT_SETTLE_DELAY

DSCONFIGAD = "/usr/sbin/dsconfigad"
KILLALL = "/usr/bin/killall"
SEARCH_NODES = ("/Search/Contacts", "/Search")
CUSTOM_SEARCH_PATH = "dsAttrTypeStandard:CSPSearchPath"
AUTOMATIC_SEARCH_PATH = "dsAttrTypeStandard:NSPSearchPath"


class DirectoryBinder:
    """Detects and removes the machine's Active Directory binding"""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()
        self.logger = logging.getLogger(self.__class__.__name__)

    def is_bound(self) -> bool:
        result = self.runner.run([DSCL, "localhost", "-list", "."])
        return any(line.strip() == DIRECTORY_MARKER for line in result.stdout.splitlines())

    def _ad_search_paths(self) -> List[str]:
        """Active Directory entries of the custom /Search path"""
        result = self.runner.run([DSCL, "/Search", "-read", ".", "CSPSearchPath"])
        return [line.strip() for line in result.stdout.splitlines()
                if DIRECTORY_MARKER in line]

    def unbind(self) -> None:
        """Force unbind and fall back to the automatic search policy"""
        search_paths = self._ad_search_paths()

        self.runner.run([DSCONFIGAD, "-remove", "-force", "-u", "none", "-p", "none"], check=True)

        for node in SEARCH_NODES:
            for search_path in search_paths:
                self.runner.run([DSCL, node, "-delete", ".", "CSPSearchPath", search_path])

        for node in reversed(SEARCH_NODES):
            self.runner.run([DSCL, node, "-change", ".", "SearchPolicy",
                             CUSTOM_SEARCH_PATH, AUTOMATIC_SEARCH_PATH])

    def enforce(self, unbind_requested: bool) -> BindingState:
        """Apply the unbind policy once, before any account is touched"""
        if not self.is_bound():
            self.logger.info("This machine is not bound to Active Directory.")
            return BindingState.UNBOUND

        self.logger.info("This machine is bound to Active Directory.")

        if not unbind_requested:
            self.logger.error("Active Directory binding is still active.")
            self.logger.error("Please check if computer is bound via configuration profile.")
            return BindingState.BOUND

        try:
            self.unbind()
        except CommandError as e:
            self.logger.error(f"Failed to remove AD binding: {e}")
            return BindingState.BOUND

        self.logger.info("AD binding has been removed.")
        return BindingState.UNBOUND


class DirectoryCacheRefresher:
    """
    Restarts opendirectoryd so the local node re-reads account records.

    The restart gives no completion signal, so refresh() blocks for a fixed
    settle delay before returning. The refresh affects every account on the
    machine, so accounts must not be converted in parallel.
    """

    def __init__(self, runner: Optional[CommandRunner] = None,
                 settle_delay: float = DEFAULT_SETTLE_DELAY,
                 sleep: Callable[[float], None] = time.sleep):
        self.runner = runner or CommandRunner()
        self.settle_delay = settle_delay
        self.sleep = sleep
        self.logger = logging.getLogger(self.__class__.__name__)

    def refresh(self) -> RefreshToken:
        triggered_at = datetime.now()
        result = self.runner.run([KILLALL, "opendirectoryd"])
        if not result.ok:
            self.logger.warning(f"opendirectoryd restart returned {result.returncode}")

        self.logger.debug(f"Waiting {self.settle_delay}s for directory services to settle")
        if self.settle_delay > 0:
            self.sleep(self.settle_delay)

        return RefreshToken(self.settle_delay, triggered_at, datetime.now())
