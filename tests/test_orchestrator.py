"""Tests for the per-account conversion workflow."""

import os
import subprocess
import sys
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.accounts import list_candidate_usernames  # noqa: E402
from core.attribute_store import AttributeStoreError, DsclAttributeStore  # noqa: E402
from core.classifier import AccountClassifier  # noqa: E402
from core.credential_migrator import AUTH_AUTHORITY_ATTRIBUTE, CredentialMigrator  # noqa: E402
from core.fixups import CHOWN, DSEDITGROUP, PostConversionFixups  # noqa: E402
from core.models import Classification, ConversionResult  # noqa: E402
from core.orchestrator import ConversionOrchestrator  # noqa: E402
from core.stripper import DIRECTORY_LINKAGE_ATTRIBUTES, AttributeStripper  # noqa: E402
from utils.commands import CommandRunner  # noqa: E402
from fakes import (  # noqa: E402
    AD_ORIGIN,
    SHADOW_HASH,
    FakeRefresher,
    FakeRunner,
    InMemoryAttributeStore,
    local_record,
    mobile_record,
)


def build(store, runner, refresher, promote_to_admin=False):
    return ConversionOrchestrator(
        classifier=AccountClassifier(store),
        stripper=AttributeStripper(store),
        migrator=CredentialMigrator(store),
        refresher=refresher,
        fixups=PostConversionFixups(store, runner),
        promote_to_admin=promote_to_admin,
    )


class TestConversionOrchestrator(unittest.TestCase):
    """Test classify, strip, migrate, verify and fix up."""

    def setUp(self):
        self.store = InMemoryAttributeStore({
            "root": {"NFSHomeDirectory": ["/var/root"]},
            "alice": mobile_record(),
            "bob": local_record(),
        })
        self.runner = FakeRunner()
        self.refresher = FakeRefresher()
        self.orchestrator = build(self.store, self.runner, self.refresher)

    def test_local_account_is_untouched(self):
        outcome = self.orchestrator.convert_account("bob")

        self.assertIs(outcome.result, ConversionResult.SKIPPED_LOCAL)
        self.assertEqual(self.store.mutation_count, 0)
        self.assertEqual(self.refresher.refresh_count, 0)
        self.assertEqual(self.runner.calls, [])

    def test_mobile_account_is_converted(self):
        outcome = self.orchestrator.convert_account("alice")

        self.assertIs(outcome.classification, Classification.DIRECTORY_BACKED)
        self.assertIs(outcome.result, ConversionResult.CONVERTED)
        self.assertTrue(outcome.fixups_applied)
        self.assertEqual(self.refresher.refresh_count, 1)

        record = self.store.records["alice"]
        self.assertEqual(record[AUTH_AUTHORITY_ATTRIBUTE], [SHADOW_HASH])
        for attribute in DIRECTORY_LINKAGE_ATTRIBUTES:
            self.assertNotIn(attribute, record)

    def test_end_to_end_run(self):
        usernames = list_candidate_usernames(self.store)
        self.assertEqual(usernames, ["alice", "bob"])

        summary = self.orchestrator.run(usernames)

        self.assertEqual(summary.exit_code, 0)
        self.assertIs(summary.outcome_for("alice").result, ConversionResult.CONVERTED)
        self.assertIs(summary.outcome_for("bob").result, ConversionResult.SKIPPED_LOCAL)
        self.assertEqual(self.store.records["alice"][AUTH_AUTHORITY_ATTRIBUTE], [SHADOW_HASH])
        self.assertEqual(self.runner.calls_to(CHOWN), [[CHOWN, "-R", "alice:staff", "/Users/alice"]])
        self.assertEqual(
            self.runner.calls_to(DSEDITGROUP),
            [[DSEDITGROUP, "-o", "edit", "-a", "alice", "-t", "user", "staff"]],
        )

    def test_failed_verification_skips_fixups(self):
        def directory_reasserts_origin():
            self.store.records["alice"]["OriginalNodeName"] = [AD_ORIGIN]

        self.refresher.on_refresh = directory_reasserts_origin

        summary = self.orchestrator.run(["alice", "bob"])

        outcome = summary.outcome_for("alice")
        self.assertIs(outcome.result, ConversionResult.FAILED)
        self.assertFalse(outcome.fixups_applied)
        self.assertEqual(self.runner.calls_to(CHOWN), [])
        self.assertEqual(self.runner.calls_to(DSEDITGROUP), [])
        self.assertIs(summary.outcome_for("bob").result, ConversionResult.SKIPPED_LOCAL)
        self.assertEqual(summary.exit_code, 1)

    def test_unknown_account_does_not_stop_the_run(self):
        self.store.records["carol"] = {"OriginalNodeName": ["/LDAPv3/od.example.com"]}

        summary = self.orchestrator.run(["carol", "alice"])

        self.assertIs(summary.outcome_for("carol").result, ConversionResult.UNKNOWN)
        self.assertIs(summary.outcome_for("alice").result, ConversionResult.CONVERTED)
        self.assertEqual(summary.exit_code, 1)
        self.assertEqual(self.store.records["carol"], {"OriginalNodeName": ["/LDAPv3/od.example.com"]})

    def test_migration_error_fails_account(self):
        self.store.fail_value_deletes = True

        outcome = self.orchestrator.convert_account("alice")

        self.assertIs(outcome.result, ConversionResult.FAILED)
        self.assertEqual(self.refresher.refresh_count, 0)
        self.assertEqual(self.runner.calls, [])

    def test_unreadable_record_fails_account(self):
        original_read = self.store.read_values

        def read_values(username, attribute):
            if username == "alice":
                raise AttributeStoreError("garbled dscl output")
            return original_read(username, attribute)

        self.store.read_values = read_values

        summary = self.orchestrator.run(["alice", "bob"])

        self.assertIs(summary.outcome_for("alice").result, ConversionResult.FAILED)
        self.assertIs(summary.outcome_for("bob").result, ConversionResult.SKIPPED_LOCAL)
        self.assertEqual(summary.exit_code, 1)

    def test_verification_read_error_keeps_partial_outcome(self):
        original_read = self.store.read_values
        refreshed = []

        def read_values(username, attribute):
            if refreshed and username == "alice":
                raise AttributeStoreError("opendirectoryd not ready")
            return original_read(username, attribute)

        self.store.read_values = read_values
        self.refresher.on_refresh = lambda: refreshed.append(True)

        summary = self.orchestrator.run(["alice", "bob"])

        outcome = summary.outcome_for("alice")
        self.assertIs(outcome.classification, Classification.DIRECTORY_BACKED)
        self.assertIs(outcome.result, ConversionResult.FAILED)
        self.assertIn("OriginalNodeName", outcome.removed_attributes)
        self.assertEqual(len(outcome.removed_authenticators), 2)
        self.assertFalse(outcome.fixups_applied)
        self.assertEqual(self.runner.calls, [])
        self.assertIs(summary.outcome_for("bob").result, ConversionResult.SKIPPED_LOCAL)
        self.assertEqual(summary.exit_code, 1)

    def test_promote_to_admin(self):
        orchestrator = build(self.store, self.runner, self.refresher, promote_to_admin=True)

        orchestrator.convert_account("alice")

        groups = [call[-1] for call in self.runner.calls_to(DSEDITGROUP)]
        self.assertEqual(groups, ["staff", "admin"])

    def test_fixup_failure_keeps_conversion_result(self):
        runner = FakeRunner(default_returncode=1)
        orchestrator = build(self.store, runner, self.refresher)

        summary = orchestrator.run(["alice"])

        self.assertIs(summary.outcome_for("alice").result, ConversionResult.CONVERTED)
        self.assertEqual(summary.exit_code, 0)


class TestRunAgainstDscl(unittest.TestCase):
    """Test that a bad dscl invocation for one account leaves the rest running."""

    def setUp(self):
        self.store = DsclAttributeStore(CommandRunner())
        self.orchestrator = build(self.store, FakeRunner(), FakeRefresher())

    @staticmethod
    def dscl_for(alice_behaviour):
        def fake_run(args, **kwargs):
            if "/Users/alice" in args:
                return alice_behaviour(args)
            # Every attribute is missing for other accounts
            return subprocess.CompletedProcess(args, 181, "", "No such key")
        return fake_run

    def test_undecodable_output_fails_only_that_account(self):
        # What errors="replace" yields for bytes like b"\xff\xfe"
        garbled = self.dscl_for(lambda args: subprocess.CompletedProcess(args, 0, "��", ""))

        with patch("utils.commands.subprocess.run", side_effect=garbled):
            summary = self.orchestrator.run(["alice", "bob"])

        self.assertIs(summary.outcome_for("alice").result, ConversionResult.FAILED)
        self.assertIs(summary.outcome_for("bob").result, ConversionResult.SKIPPED_LOCAL)
        self.assertEqual(summary.exit_code, 1)

    def test_unexecutable_dscl_does_not_stop_run(self):
        def denied(args):
            raise PermissionError(13, "Permission denied", args[0])

        with patch("utils.commands.subprocess.run", side_effect=self.dscl_for(denied)):
            summary = self.orchestrator.run(["alice", "bob"])

        self.assertEqual([outcome.username for outcome in summary.outcomes], ["alice", "bob"])
        self.assertIs(summary.outcome_for("bob").result, ConversionResult.SKIPPED_LOCAL)


if __name__ == "__main__":
    unittest.main()
