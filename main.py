# =============================================================================
# main.py - CLI entry point
# =============================================================================

import argparse
import logging
import logging.handlers
import os
import sys
from typing import Optional

from core.accounts import list_candidate_usernames
from core.attribute_store import DsclAttributeStore
from core.classifier import AccountClassifier
from core.credential_migrator import CredentialMigrator
from core.directory_service import DirectoryBinder, DirectoryCacheRefresher
from core.fixups import PostConversionFixups
from core.orchestrator import ConversionOrchestrator
from core.stripper import AttributeStripper
from utils.commands import CommandRunner
from utils.config import Config

__version__ = "1.0.2"

SCRIPT_ID = "convert_mobile"
SYSLOG_SOCKETS = ("/var/run/syslog", "/dev/log")


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Setup logging to the console, the system log and an optional file"""
    formatter = logging.Formatter(
        fmt='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%m-%d-%Y %H:%M:%S'
    )

    # Get root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Unified log, view with: log show --predicate 'eventMessage contains "convert_mobile"'
    syslog_address = next((path for path in SYSLOG_SOCKETS if os.path.exists(path)), None)
    if syslog_address:
        syslog_handler = logging.handlers.SysLogHandler(address=syslog_address)
        syslog_handler.setLevel(logging.INFO)
        syslog_handler.setFormatter(logging.Formatter(f'{SCRIPT_ID}: [%(levelname)s] %(message)s'))
        root_logger.addHandler(syslog_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def build_orchestrator(config: Config, runner: CommandRunner,
                       store: DsclAttributeStore) -> ConversionOrchestrator:
    """Wire the conversion pipeline against the local directory node"""
    return ConversionOrchestrator(
        classifier=AccountClassifier(store),
        stripper=AttributeStripper(store),
        migrator=CredentialMigrator(store),
        refresher=DirectoryCacheRefresher(runner, settle_delay=config.settle_delay),
        fixups=PostConversionFixups(store, runner),
        promote_to_admin=config.promote_to_admin,
    )


def run(config: Config, runner: Optional[CommandRunner] = None) -> int:
    """Unbind if configured, convert every mobile account, return the exit code"""
    logger = logging.getLogger(__name__)
    runner = runner or CommandRunner()
    store = DsclAttributeStore(runner)

    DirectoryBinder(runner).enforce(config.unbind_ad)

    usernames = list_candidate_usernames(store)
    logger.info(f"Checking {len(usernames)} user accounts")

    summary = build_orchestrator(config, runner, store).run(usernames)

    if summary.exit_code == 0:
        logger.info("Finished checking all user accounts.")
    return summary.exit_code


def main():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Convert Active Directory mobile accounts to local accounts"
    )
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Console logging level')
    parser.add_argument('--log-file', help='Also write a DEBUG log to this file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args()

    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger(__name__)

    logger.info("Starting run")
    logger.info(f"Script version {__version__}")

    # Load configuration
    config = Config()
    if not config.validate():
        invalid_vars = config.get_invalid_vars()
        logger.error(f"Invalid configuration values: {invalid_vars}")
        sys.exit(1)

    try:
        exit_code = run(config)
    except Exception as e:
        logger.error(f"Processing failed: {e}")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
