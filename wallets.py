"""
Wallet address helpers.
TaskCube wallets are EVM accounts: "0x" followed by 40 hex digits.
Addresses are stored in EIP-55 checksum form so lookups do not depend on the
case a client sent.
"""

from eth_utils import is_address, to_checksum_address


def normalize_address(address):
    """
    Validate an EVM wallet address.
    Returns: (checksum_address, error_message)
    """
    if not isinstance(address, str) or not address.strip():
        return None, "Wallet address is required"

    address = address.strip()
    if not is_address(address):
        # mixed case with a bad checksum lands here too
        return None, f"Invalid wallet address: {address[:50]}"

    return to_checksum_address(address), None


def short_wallet(wallet):
    wallet = (wallet or "").strip()
    return f"{wallet[:6]}...{wallet[-4:]}" if wallet else ""
