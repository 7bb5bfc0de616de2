"""
Log masking for on-chain identifiers.

Addresses and transaction hashes are shortened in every log line so logs
can be shared without exposing full wallet activity. The signing key is
never passed to the logger at all.
"""


def _shorten(value: str | None, head: int, tail: int) -> str:
    if not value or len(value) < head + tail:
        return "***"
    return f"{value[:head]}...{value[-tail:]}"


def mask_address(address: str | None) -> str:
    """
    Mask wallet address: 0x1234...5678

    Examples:
        >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
        '0x1234...5678'
        >>> mask_address(None)
        '***'
    """
    return _shorten(address, 6, 4)


def mask_tx_hash(tx_hash: str | None) -> str:
    """
    Mask transaction hash: 0x12345678...abcdef

    Empty hashes (records that never reached broadcast) become '***'.
    """
    return _shorten(tx_hash, 10, 6)
