"""Account lookups: address validation and XRP balance."""

from __future__ import annotations

import logging

from xrpl.core.addresscodec import is_valid_classic_address
from xrpl.utils import drops_to_xrp

from impact_ledger.xrpl.connection import ConnectionManager
from impact_ledger.xrpl.errors import LedgerRequestError
from impact_ledger.xrpl.tx import validate_address

logger = logging.getLogger(__name__)


def is_valid_address(address: str) -> bool:
    """True if ``address`` is a classic r-address."""
    return bool(address) and is_valid_classic_address(address)


async def get_balance(connections: ConnectionManager, address: str) -> str:
    """Validated XRP balance of ``address`` as a decimal string.

    An account that does not exist on-ledger has a balance of "0".

    Raises:
        ValueError: If address is invalid.
        LedgerConnectionError: If no endpoint is reachable.
        LedgerRequestError: On any other node error.
    """
    validate_address(address)
    client = await connections.acquire()
    try:
        result = await client.request(
            "account_info", {"account": address, "ledger_index": "validated"}
        )
    except LedgerRequestError as exc:
        if exc.error == "actNotFound":
            logger.debug("account %s not found; balance is 0", address)
            return "0"
        raise
    drops = result["account_data"]["Balance"]
    return format(drops_to_xrp(str(drops)).normalize(), "f")
