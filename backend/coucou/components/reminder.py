"""Reminder commands: create, list and delete."""

from __future__ import annotations

from datetime import timezone, tzinfo

from coucou.commands.timespec import resolve_due
from coucou.commands.types import RemindCommand, RemindDeleteCommand, RemindListCommand
from coucou.components.settings import TIMEZONE_KEY, parse_timezone
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage

LIST_LIMIT = 5


async def _user_timezone(ctx: BotContext, nick: str) -> tzinfo:
    value = await ctx.state.get_setting(nick, TIMEZONE_KEY)
    return (parse_timezone(value) if value else None) or timezone.utc


async def handle_remind(
    ctx: BotContext, message: InboundMessage, command: RemindCommand
) -> str | None:
    tz = await _user_timezone(ctx, message.nick)
    now = ctx.clock()
    due = resolve_due(command.when, now, tz)
    if due <= now:
        return f"{message.nick}: {due.astimezone(tz):%Y-%m-%d %H:%M} is in the past"

    reminder = await ctx.reminders.add(message.channel, message.nick, due, command.text)
    return f"{message.nick}: reminder {reminder.id} set for {due.astimezone(tz):%Y-%m-%d %H:%M %Z}"


async def handle_remind_list(
    ctx: BotContext, message: InboundMessage, command: RemindListCommand
) -> str | None:
    reminders = await ctx.reminders.list_for(message.channel, message.nick)
    if not reminders:
        return f"{message.nick}: no pending reminder"
    tz = await _user_timezone(ctx, message.nick)
    shown = " | ".join(
        f"[{r.id}] {r.due_at.astimezone(tz):%Y-%m-%d %H:%M}: {r.text}" for r in reminders[:LIST_LIMIT]
    )
    if len(reminders) > LIST_LIMIT:
        shown += f" (+{len(reminders) - LIST_LIMIT} more)"
    return f"{message.nick}: {shown}"


async def handle_remind_delete(
    ctx: BotContext, message: InboundMessage, command: RemindDeleteCommand
) -> str | None:
    if await ctx.reminders.delete(command.reminder_id, message.nick):
        return f"{message.nick}: reminder {command.reminder_id} deleted"
    return f"{message.nick}: no reminder {command.reminder_id}"
