"""Telegram notification service."""
import html
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig
from ..orchestrator.events import EventBus, TransactionConfirmed, TransactionFailed

logger = logging.getLogger(__name__)

_TITLES = {
    "swap": "Swap",
    "supply": "Supply",
    "withdraw": "Withdraw",
    "borrow": "Borrow",
    "repay": "Repay",
    "faucet": "Faucet claim",
    "add_liquidity": "Add liquidity",
    "remove_liquidity": "Remove liquidity",
}


class TelegramNotifier:
    """Post confirmed and failed transactions to a Telegram chat."""

    def __init__(self, config: TelegramConfig, explorer_url: str = "") -> None:
        self.bot_token = config.bot_token
        self.chat_id = config.chat_id
        self.explorer_url = explorer_url.rstrip("/")

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(self.on_confirmed, TransactionConfirmed)
        bus.subscribe(self.on_failed, TransactionFailed)

    async def send_message(self, message: str, silent: bool = False) -> bool:
        """Send a Telegram message."""
        if not self.bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_notification": silent,
            "disable_web_page_preview": True,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(url, json=payload) as response:
                if response.status == 200:
                    logger.info("Telegram message sent")
                    return True
                else:
                    logger.error(
                        "Failed to send Telegram message: %s", response.status
                    )
                    return False

    def _link(self, tx_hash: str) -> str:
        return f'<a href="{self.explorer_url}/tx/{tx_hash}">View on explorer</a>'

    @staticmethod
    def _title(operation) -> str:
        return _TITLES.get(operation.value, operation.value)

    async def on_confirmed(self, event: TransactionConfirmed) -> None:
        step = "" if event.role.value == "execute" else f" ({event.role.value})"
        message = (
            f"✅ {self._title(event.operation)}{step} confirmed\n"
            f"\n"
            f"Block: {event.block_number}\n"
            f"{self._link(event.tx_hash)}"
        )
        await self.send_message(message, silent=event.role.is_approval)

    async def on_failed(self, event: TransactionFailed) -> None:
        message = (
            f"🚨 {self._title(event.operation)} failed at {event.role.value}\n"
            f"\n"
            f"{html.escape(event.error)}"
        )
        if event.tx_hash:
            message += f"\n{self._link(event.tx_hash)}"
        await self.send_message(message)
