"""Transaction signers."""
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from eth_account import Account

from ..errors import UserRejected

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], Union[bool, Awaitable[bool]]]


class LocalSigner:
    """Signs with a local private key, optionally asking before each signature.

    ``confirm`` receives a human description of the transaction and returns
    (or resolves to) ``True`` to sign. A ``False`` answer raises UserRejected.
    """

    def __init__(self, private_key: str, confirm: ConfirmCallback | None = None) -> None:
        self._account = Account.from_key(private_key)
        self._confirm = confirm

    @property
    def address(self) -> str:
        return self._account.address

    async def sign(self, tx: dict[str, Any], description: str) -> bytes:
        if self._confirm is not None:
            approved = self._confirm(description)
            if inspect.isawaitable(approved):
                approved = await approved
            if not approved:
                logger.info("Signature declined: %s", description)
                raise UserRejected(f"User rejected: {description}")

        signed = self._account.sign_transaction(tx)
        return bytes(signed.raw_transaction)
