# =============================================================================
# core/orchestrator.py - Per-account conversion workflow
# =============================================================================

import logging
from typing import Iterable

from core.attribute_store import AttributeStoreError
from core.classifier import AccountClassifier
from core.credential_migrator import CredentialMigrator
from core.directory_service import DirectoryCacheRefresher
from core.fixups import PostConversionFixups
from core.models import AccountOutcome, Classification, ConversionResult, RunSummary
from core.stripper import AttributeStripper


class ConversionOrchestrator:
    """Drives accounts one at a time through classify, strip, migrate, verify, fix up"""

    def __init__(self, classifier: AccountClassifier, stripper: AttributeStripper,
                 migrator: CredentialMigrator, refresher: DirectoryCacheRefresher,
                 fixups: PostConversionFixups, promote_to_admin: bool = False):
        self.classifier = classifier
        self.stripper = stripper
        self.migrator = migrator
        self.refresher = refresher
        self.fixups = fixups
        self.promote_to_admin = promote_to_admin
        self.logger = logging.getLogger(self.__class__.__name__)

    def convert_account(self, username: str) -> AccountOutcome:
        """Convert a single account; unreadable records raise AttributeStoreError"""
        classification = self.classifier.classify(username)

        if classification is Classification.LOCAL:
            self.logger.info(f"Found {username} has a local account. Nothing to do...")
            return AccountOutcome(username, classification, ConversionResult.SKIPPED_LOCAL)

        if classification is Classification.UNKNOWN:
            self.logger.warning(f"Unable to determine account type of {username}")
            return AccountOutcome(username, classification, ConversionResult.UNKNOWN,
                                  detail="unrecognised origin node")

        self.logger.info(f"Converting {username} to a local account...")
        outcome = AccountOutcome(username, classification, ConversionResult.FAILED)

        # Stripping must finish before AuthenticationAuthority is rewritten
        outcome.removed_attributes = self.stripper.strip(username)
        try:
            outcome.removed_authenticators = self.migrator.migrate(username)
        except AttributeStoreError as e:
            self.logger.error(f"Failed to migrate the cached password for {username}: {e}")
            outcome.detail = str(e)
            return outcome

        token = self.refresher.refresh()
        self.logger.debug(f"Directory cache settled after {token.settle_delay}s")

        try:
            verified = self.classifier.classify(username)
        except AttributeStoreError as e:
            self.logger.error(f"Could not verify the conversion of {username}: {e}")
            outcome.detail = str(e)
            return outcome

        if verified is not Classification.LOCAL:
            self.logger.error(f"Failed to convert {username} to a local account.")
            outcome.detail = "account still not local after directory refresh"
            return outcome

        self.logger.info(f"{username} was successfully converted to a local account. Performing cleanup tasks...")
        outcome.result = ConversionResult.CONVERTED
        outcome.fixups_applied = True
        if not self.fixups.apply(username, self.promote_to_admin):
            outcome.detail = "cleanup tasks incomplete"
            self.logger.warning(f"Cleanup tasks for {username} did not all succeed")

        return outcome

    def run(self, usernames: Iterable[str]) -> RunSummary:
        """Process every candidate sequentially and aggregate the outcomes"""
        summary = RunSummary()

        for username in usernames:
            try:
                outcome = self.convert_account(username)
            except AttributeStoreError as e:
                self.logger.error(f"Could not read the account record for {username}: {e}")
                outcome = AccountOutcome(username, Classification.UNKNOWN, ConversionResult.FAILED,
                                         detail=str(e))
            summary.add(outcome)

        self.log_statistics(summary)
        return summary

    def log_statistics(self, summary: RunSummary) -> None:
        counts = {result.value: count for result, count in summary.result_counts.items()}
        self.logger.info(f"Conversion summary: {counts}")
        for outcome in summary.outcomes:
            if outcome.failed:
                self.logger.error(f"{outcome.username}: {outcome.result.value} ({outcome.detail})")
