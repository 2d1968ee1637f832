#!/usr/bin/env python3
"""Entry point for the token relayer registration run.

Reconciles the relayer contract on the home chain with a registration
file: registers missing tokens, optionally sets max native swap amounts
and swap rates, then prints a verification digest.
"""

import argparse
import asyncio
import logging
import os
import sys

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from token_relayer_admin.config import RegistrationConfig, ReleaseConfig
from token_relayer_admin.coordinator import RunCoordinator, RunOptions


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Register tokens and sync swap rates on the token bridge relayer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  RELEASE_CHAIN_ID        - Wormhole chain id of the home chain
  RELEASE_RPC             - RPC endpoint of the home chain
  RELEASE_BRIDGE_ADDRESS  - Token bridge contract on the home chain
  PRIVATE_KEY             - Key of the relayer owner
  REQUEST_TIMEOUT         - RPC request timeout in seconds (default: 30)
  RECEIPT_TIMEOUT         - Seconds to wait for each receipt (default: 180)
  LOG_LEVEL               - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to the registration JSON file"
    )
    parser.add_argument(
        "--set-swap-rates",
        action="store_true",
        default=False,
        help="Set swap rates for all configured tokens in one batch"
    )
    parser.add_argument(
        "--set-max-native-amounts",
        action="store_true",
        default=False,
        help="Set max native swap amounts for all configured tokens"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    return parser.parse_args(argv)


async def main() -> None:
    """Main entry point for the registration run.

    Raises:
        SystemExit: On configuration or unexpected fatal errors
    """
    args: argparse.Namespace = parse_args()
    setup_logging(args.log_level)

    try:
        release: ReleaseConfig = ReleaseConfig.from_env()
        release.log_config()
        registration: RegistrationConfig = RegistrationConfig.from_file(args.config)

        coordinator: RunCoordinator = RunCoordinator.from_config(
            release,
            registration,
            RunOptions(
                set_swap_rates=args.set_swap_rates,
                set_max_native_amounts=args.set_max_native_amounts,
            ),
        )
        result = await coordinator.run()

        if not result.report.ok:
            logger.warning(f"Run finished with {result.report.failures} failure(s), see digest above")

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables and config file:")
        logger.error("  - RELEASE_CHAIN_ID: Wormhole chain id of the home chain")
        logger.error("  - RELEASE_RPC: RPC endpoint of the home chain")
        logger.error("  - RELEASE_BRIDGE_ADDRESS: Token bridge contract address")
        logger.error("  - PRIVATE_KEY: Relayer owner key")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, stopping")
        sys.exit(130)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
