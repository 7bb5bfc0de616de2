"""
RPC Wrapper with Timeout Logic.

Provides centralized timeout handling for all anchoring RPC calls.
No retry here: failed anchoring attempts are re-attempted by hand.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from loguru import logger

from civic_anchor.config.constants import RPC_TIMEOUT
from civic_anchor.utils.exceptions import AnchorTimeoutError

T = TypeVar("T")


async def with_timeout(
    coro: Awaitable[T],
    timeout: float = RPC_TIMEOUT,
    operation_name: str = "RPC call",
) -> T:
    """
    Execute async coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds (default: RPC_TIMEOUT)
        operation_name: Operation name for logging

    Returns:
        Result of the coroutine

    Raises:
        AnchorTimeoutError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.error(error_msg)
        raise AnchorTimeoutError(error_msg) from e
