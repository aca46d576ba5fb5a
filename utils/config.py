# =============================================================================
# utils/config.py - Configuration management
# =============================================================================

import os
from typing import Optional, List
from dotenv import load_dotenv

YES_NO_VALUES = {"yes": True, "no": False}
DEFAULT_SETTLE_DELAY = 20.0


def parse_yes_no(value: Optional[str]) -> Optional[bool]:
    """Map a Yes/No option to a bool, None when unrecognised"""
    if value is None:
        return None
    return YES_NO_VALUES.get(value.strip().lower())


class Config:
    """Configuration management"""

    def __init__(self):
        load_dotenv()

    @property
    def unbind_ad_raw(self) -> str:
        return os.getenv("UNBIND_AD", "Yes")

    @property
    def promote_to_admin_raw(self) -> str:
        return os.getenv("PROMOTE_TO_ADMIN", "No")

    @property
    def settle_delay_raw(self) -> str:
        return os.getenv("SETTLE_DELAY", str(DEFAULT_SETTLE_DELAY))

    @property
    def unbind_ad(self) -> bool:
        """Unbind from Active Directory when the machine is bound"""
        return bool(parse_yes_no(self.unbind_ad_raw))

    @property
    def promote_to_admin(self) -> bool:
        """Add converted accounts to the local admin group"""
        return bool(parse_yes_no(self.promote_to_admin_raw))

    @property
    def settle_delay(self) -> float:
        """Seconds to wait after restarting opendirectoryd"""
        try:
            return float(self.settle_delay_raw)
        except ValueError:
            return DEFAULT_SETTLE_DELAY

    def validate(self) -> bool:
        """Validate that every option holds a usable value"""
        return not self.get_invalid_vars()

    def get_invalid_vars(self) -> List[str]:
        """Get list of options with unusable values"""
        invalid = [
            name for value, name in [
                (self.unbind_ad_raw, "UNBIND_AD"),
                (self.promote_to_admin_raw, "PROMOTE_TO_ADMIN"),
            ]
            if parse_yes_no(value) is None
        ]

        try:
            if float(self.settle_delay_raw) < 0:
                invalid.append("SETTLE_DELAY")
        except ValueError:
            invalid.append("SETTLE_DELAY")

        return invalid
