"""Telegram dashboard bot.

Read-only commands over the telemetry service (/bots, /bot, /trades,
/stats, /analytics, /help) plus a sender interface used by the service to
push trade error alerts.
"""

from __future__ import annotations

import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import Application, CommandHandler, ContextTypes

from .config import TelegramConfig
from .errors import NotFoundError
from .formatter import (
    format_analytics,
    format_bot_list,
    format_bot_state,
    format_startup_message,
    format_statistics,
    format_trade_error_alert,
    format_trades,
)
from .models import BotRecord, CompletedTrade
from .service import TelemetryService

logger = logging.getLogger(__name__)

# Telegram message length limit
MAX_MESSAGE_LENGTH = 4096

HELP_TEXT = (
    "/bots — all registered bots\n"
    "/bot &lt;id&gt; — current state of one bot\n"
    "/trades &lt;id&gt; — recent trades of one bot\n"
    "/stats &lt;id&gt; — statistics of one bot\n"
    "/analytics [7|30|90|all] — fleet analytics\n"
    "/help — this message"
)


class TelegramBot:
    """Telegram bot with dashboard commands and alert sending."""

    def __init__(self, config: TelegramConfig, service: TelemetryService) -> None:
        self._chat_id = int(config.chat_id)
        self._service = service
        self._app = Application.builder().token(config.bot_token).build()
        self._app.add_handler(CommandHandler("bots", self._cmd_bots))
        self._app.add_handler(CommandHandler("bot", self._cmd_bot))
        self._app.add_handler(CommandHandler("trades", self._cmd_trades))
        self._app.add_handler(CommandHandler("stats", self._cmd_stats))
        self._app.add_handler(CommandHandler("analytics", self._cmd_analytics))
        self._app.add_handler(CommandHandler("help", self._cmd_help))

    async def start(self) -> None:
        """Start the Telegram bot polling loop."""
        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling()
        logger.info("Telegram bot polling started")

    async def stop(self) -> None:
        """Stop the Telegram bot."""
        try:
            await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
            logger.info("Telegram bot stopped")
        except Exception as e:
            logger.error("Error stopping Telegram bot: %s", e)

    # --- Command Handlers ---

    async def _cmd_bots(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        if not update.message:
            return
        bots = await self._service.list_bots()
        await self._send_safe(update.message.chat_id, format_bot_list(bots))

    async def _cmd_bot(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        bot_id = await self._require_bot_arg(update, context)
        if bot_id is None:
            return
        state = await self._service.get_state(bot_id)
        msg = format_bot_state(state) if state else f"no state for {bot_id}"
        await self._send_safe(update.message.chat_id, msg)

    async def _cmd_trades(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        bot_id = await self._require_bot_arg(update, context)
        if bot_id is None:
            return
        trades = await self._service.list_trades(bot_id)
        await self._send_safe(update.message.chat_id, format_trades(bot_id, trades))

    async def _cmd_stats(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        bot_id = await self._require_bot_arg(update, context)
        if bot_id is None:
            return
        try:
            summary = await self._service.get_statistics(bot_id)
            msg = format_statistics(bot_id, summary)
        except NotFoundError:
            msg = f"unknown bot: {bot_id}"
        await self._send_safe(update.message.chat_id, msg)

    async def _cmd_analytics(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        if not update.message:
            return
        args = context.args or []
        analytics = await self._service.get_analytics(args[0] if args else "all")
        await self._send_safe(update.message.chat_id, format_analytics(analytics))

    async def _cmd_help(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        if not update.message:
            return
        await update.message.reply_text(HELP_TEXT, parse_mode=ParseMode.HTML)

    async def _require_bot_arg(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> str | None:
        if not update.message:
            return None
        args = context.args or []
        if not args:
            await update.message.reply_text("usage: pass a bot id, see /help")
            return None
        return args[0]

    # --- Sender Interface (called by the service) ---

    async def send_startup_message(self) -> None:
        bots = await self._service.list_bots()
        await self._send_safe(self._chat_id, format_startup_message(len(bots)))

    async def send_trade_error_alert(
        self, bot: BotRecord, trade: CompletedTrade
    ) -> None:
        await self._send_safe(self._chat_id, format_trade_error_alert(bot, trade))

    # --- Internal Helpers ---

    async def _send_safe(self, chat_id: int, text: str) -> None:
        """Send a message, splitting if it exceeds Telegram's limit."""
        for chunk in self._split_message(text):
            try:
                await self._app.bot.send_message(
                    chat_id, chunk, parse_mode=ParseMode.HTML
                )
            except Exception as e:
                logger.error("Failed to send Telegram message: %s", e)

    @staticmethod
    def _split_message(text: str) -> list[str]:
        """Split a long message into chunks that fit Telegram's limit."""
        if len(text) <= MAX_MESSAGE_LENGTH:
            return [text]

        chunks: list[str] = []
        current = ""
        for line in text.split("\n"):
            if len(current) + len(line) + 1 > MAX_MESSAGE_LENGTH:
                if current:
                    chunks.append(current.rstrip())
                current = line + "\n"
            else:
                current += line + "\n"

        if current.strip():
            chunks.append(current.rstrip())

        return chunks if chunks else [text[:MAX_MESSAGE_LENGTH]]
