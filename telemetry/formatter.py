"""HTML message formatting for the Telegram dashboard.

  - format_bot_state():     one bot's snapshot (for /bot)
  - format_bot_list():      one line per known bot (for /bots)
  - format_trades():        recent trades (for /trades)
  - format_statistics():    per-bot summary (for /stats)
  - format_analytics():     fleet-wide public analytics (for /analytics)
"""

from __future__ import annotations

from html import escape

from .models import (
    BotRecord,
    BotStateSnapshot,
    BotStatisticsSummary,
    CompletedTrade,
    PublicAnalyticsSnapshot,
    TradeStatus,
)

MAX_TRADES_SHOWN = 10


# ---------------------------------------------------------------------------
#  Bot state (for /bot and /bots)
# ---------------------------------------------------------------------------


def format_bot_state(state: BotStateSnapshot) -> str:
    """Full snapshot of one bot."""
    header = f"<b>{escape(state.bot_name)}</b>  <code>{escape(state.bot_id)}</code>"
    venue = " · ".join(
        escape(v) for v in (state.exchange, state.account, state.trading_pair) if v
    )
    lines = [header]
    if venue:
        lines.append(venue)

    lines.append("")
    if state.status is None:
        lines.append("status           —")
    else:
        running = "running" if state.status.is_running else "stopped"
        lines.append(f"status           {running} ({escape(state.status.status)})")

    p = state.position
    lines.append("")
    lines.append("<b>position</b>")
    if p is None or not p.in_position:
        lines.append("  flat")
    else:
        lines.extend(
            [
                f"  side           {p.position_side.value.lower()}  {p.position_size:.4f}",
                f"  entry          ${_fp(p.entry_price)}",
                f"  current        ${_fp(p.current_price)}",
                f"  tp / sl        ${_fp(p.take_profit)} / ${_fp(p.stop_loss)}",
                f"  unrealized     {p.unrealized_pnl:+.2f}",
            ]
        )
    if p is not None:
        lines.append(f"  balance        ${_fp(p.account_balance)}")

    s = state.strategy_signal
    if s is not None:
        lines.append("")
        lines.append("<b>signal</b>")
        lines.append(f"  long           {_ready(s.long_ready)}  {s.long_bars}/{s.threshold}")
        lines.append(f"  short          {_ready(s.short_ready)}  {s.short_bars}/{s.threshold}")
        if s.indicator_value is not None:
            lines.append(f"  indicator      {_fp(s.indicator_value)}")
        if s.additional_info:
            lines.append(f"  note           {escape(s.additional_info)}")

    lines.append("")
    lines.append(f"updated          {state.last_update:%Y-%m-%d %H:%M:%S} UTC")
    return "\n".join(lines)


def format_bot_list(bots: list[BotRecord]) -> str:
    if not bots:
        return "no bots registered"
    return "\n".join(
        f"<b>{escape(b.name)}</b>  <code>{escape(b.external_id)}</code>  "
        f"{escape(b.trading_pair)} · {b.status.lower()}"
        for b in bots
    )


# ---------------------------------------------------------------------------
#  Trades & statistics
# ---------------------------------------------------------------------------


def format_trades(bot_id: str, trades: list[CompletedTrade]) -> str:
    if not trades:
        return f"{escape(bot_id)} — no trades yet"

    lines = [f"<b>{escape(bot_id)} trades</b>  (latest {min(len(trades), MAX_TRADES_SHOWN)} of {len(trades)})"]
    for t in trades[:MAX_TRADES_SHOWN]:
        line = (
            f"#{t.id}  {t.closed_at:%d.%m %H:%M}  {escape(t.trading_pair)} "
            f"{t.position_side.value.lower()}  <b>{t.realized_pnl:+.2f}</b>"
        )
        if t.status is TradeStatus.ERROR:
            line += "  error"
        lines.append(line)
    return "\n".join(lines)


def format_statistics(bot_id: str, s: BotStatisticsSummary) -> str:
    pnl_sign = "+" if s.net_profit >= 0 else ""
    return (
        f"<b>{escape(bot_id)} statistics</b>\n"
        f"\n"
        f"trades           {s.total_trades}  ({s.winning_trades}W / {s.losing_trades}L)\n"
        f"win rate         {s.win_rate:.2f}%\n"
        f"\n"
        f"<b>pnl</b>\n"
        f"  net profit     <b>{pnl_sign}{s.net_profit:.2f}</b>\n"
        f"  total profit   {s.total_profit:.2f}\n"
        f"  total loss     {s.total_loss:.2f}\n"
        f"  avg win        {s.average_profit:.2f}\n"
        f"  avg loss       {s.average_loss:.2f}\n"
        f"  max drawdown   {s.max_drawdown:.2f}"
    )


def format_analytics(a: PublicAnalyticsSnapshot) -> str:
    period = "all time" if a.period == "all" else f"last {a.period} days"
    pnl_sign = "+" if a.total_profit >= 0 else ""
    lines = [
        f"<b>fleet analytics</b>  <code>{period}</code>",
        "",
        f"total profit     <b>{pnl_sign}{a.total_profit:.2f}</b>",
        f"trades           {a.total_trades}  ({a.winning_trades} won)",
        f"win rate         {a.win_rate:.1f}%",
        f"bots             {a.active_bots} running / {a.total_bots}",
    ]
    if a.chart_data:
        last = a.chart_data[-1]
        lines.append(f"cumulative       {last.pnl:+.2f} as of {last.full_date}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
#  Alerts
# ---------------------------------------------------------------------------


def format_trade_error_alert(bot: BotRecord, trade: CompletedTrade) -> str:
    reason = escape(trade.error_message) if trade.error_message else "no details"
    return (
        f"<b>{escape(bot.name)} trade error</b>\n"
        f"#{trade.id} {escape(trade.trading_pair)} "
        f"{trade.position_side.value.lower()}  {trade.realized_pnl:+.2f}\n"
        f"{reason}"
    )


def format_startup_message(bot_count: int) -> str:
    return f"telemetry backend started — {bot_count} bot(s) registered"


# ---------------------------------------------------------------------------
#  Helpers
# ---------------------------------------------------------------------------


def _ready(flag: bool) -> str:
    return "ready" if flag else "waiting"


def _fp(price: float) -> str:
    """Format price with thousands separator and smart decimals."""
    if price < 0:
        return f"-{_fp(-price)}"
    if price >= 1000.0:
        whole = int(price)
        frac = round((price - whole) * 100)
        if frac == 100:
            whole, frac = whole + 1, 0
        formatted = f"{whole:,}"
        if frac > 0:
            return f"{formatted}.{frac:02d}"
        return formatted
    elif price >= 1.0:
        return f"{price:.2f}"
    elif price >= 0.01:
        return f"{price:.4f}"
    elif price == 0:
        return "0"
    else:
        return f"{price:.6f}"
