# =============================================================================
# core/fixups.py - Post-conversion ownership and group membership
# =============================================================================

import logging
from typing import Optional

from core.attribute_store import AttributeStore
from utils.commands import CommandRunner

CHOWN = "/usr/sbin/chown"
DSEDITGROUP = "/usr/sbin/dseditgroup"
HOME_ATTRIBUTE = "NFSHomeDirectory"
STAFF_GROUP = "staff"
ADMIN_GROUP = "admin"


class PostConversionFixups:
    """Additive clean-up run after an account is verified local"""

    def __init__(self, store: AttributeStore, runner: Optional[CommandRunner] = None,
                 staff_group: str = STAFF_GROUP, admin_group: str = ADMIN_GROUP):
        self.store = store
        self.runner = runner or CommandRunner()
        self.staff_group = staff_group
        self.admin_group = admin_group
        self.logger = logging.getLogger(self.__class__.__name__)

    def apply(self, username: str, promote_to_admin: bool = False) -> bool:
        """Fix home ownership and group membership, False if any step failed"""
        ok = True

        home_dir = self.store.read_attribute(username, HOME_ATTRIBUTE).strip()
        if home_dir:
            self.logger.info(f"Home directory location: {home_dir}")
            self.logger.info(f"Updating home folder permissions for the {username} account")
            ok &= self._run(
                [CHOWN, "-R", f"{username}:{self.staff_group}", home_dir],
                f"update ownership of {home_dir}"
            )

        self.logger.info(f"Adding {username} to the {self.staff_group} group on this Mac.")
        ok &= self._add_to_group(username, self.staff_group)

        if promote_to_admin:
            if self._add_to_group(username, self.admin_group):
                self.logger.info(f"{username} has been successfully promoted to a local administrator")
            else:
                ok = False
        else:
            self.logger.info(f"Administrator rights not modified for {username}")

        return ok

    def _add_to_group(self, username: str, group: str) -> bool:
        return self._run(
            [DSEDITGROUP, "-o", "edit", "-a", username, "-t", "user", group],
            f"add {username} to {group}"
        )

    def _run(self, args, action: str) -> bool:
        result = self.runner.run(args)
        if not result.ok:
            self.logger.error(f"Failed to {action}: {result.stderr.strip()}")
        return result.ok
