#!/usr/bin/env python3
"""Send a test civic event and wait for its confirmation."""
import asyncio
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from civic_anchor.config.settings import get_settings
from civic_anchor.services.anchoring import AnchoringService, NetworkMonitor
from civic_anchor.utils.logging import setup_logging


async def main() -> int:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    logger.info(f"Config: {settings.config_summary()}")

    status = await NetworkMonitor(settings).is_connected(force_check=True)
    logger.info(f"Network: {status.message}")

    service = AnchoringService(settings)
    try:
        if not await service.initialize():
            logger.error("Service not ready - check SHARDEUM_* settings")
            return 1

        result = await service.send_test_event()
        if result.success:
            logger.success(f"Confirmed: {service.explorer_url(result.tx_hash)}")
        else:
            logger.warning(f"Test event not confirmed: {result.error_message}")

        logger.info(f"Stats: {service.get_stats().to_dict()}")
        return 0 if result.success else 2
    finally:
        await service.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
