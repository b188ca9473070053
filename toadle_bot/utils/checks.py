"""Command context, checks and the error replies shared by every cog.

Cogs raise `CommandFailed` for problems the invoker should see; the Core
cog's `on_command_error` listener turns that (and discord.py's own check,
cooldown and argument errors) into a one-line reply.
"""
from __future__ import annotations

from typing import Any, Optional

from discord.ext import commands

NO_PERMISSION_REPLY = "❌ You do not have permission to use this command."
GENERIC_ERROR_REPLY = "❌ There was an error executing this command."
DISABLED_REPLY = "❌ This feature is disabled on this server."
GUILD_ONLY_REPLY = "❌ This command can only be used in a server."
USER_NOT_FOUND_REPLY = "❌ I couldn't find that user."
COOLDOWN_REPLY = "⏱️ Please wait {seconds} seconds before using this command again."


class CommandFailed(commands.CommandError):
    """A user-facing failure; the message is shown to the invoker."""


class FeatureDisabled(commands.CheckFailure):
    def __init__(self, feature: str):
        super().__init__(DISABLED_REPLY)
        self.feature = feature


def has_role(member: Any, role_name: str) -> bool:
    roles = getattr(member, "roles", None) or []
    return any(getattr(r, "name", None) == role_name for r in roles)


class ToadleContext(commands.Context):
    """`commands.Context` with shortcuts to the economy core."""

    @property
    def core(self):
        return self.bot.core

    @property
    def guild_id(self) -> Optional[str]:
        return str(self.guild.id) if self.guild is not None else None

    def usage(self) -> str:
        command = self.command
        text = command.usage or f"{command.qualified_name} {command.signature}".strip()
        return f"{self.prefix or ''}{text}"

    def usage_error(self) -> CommandFailed:
        return CommandFailed(f"Usage: `{self.usage()}`")

    def has_role(self, role_name: str) -> bool:
        return has_role(self.author, role_name)


def feature_enabled(feature: str):
    """Block the command when the guild has switched `feature` off."""

    async def predicate(ctx: commands.Context) -> bool:
        guild_id = ctx.guild.id if ctx.guild is not None else None
        if not ctx.bot.core.config.is_feature_enabled(guild_id, feature):
            raise FeatureDisabled(feature)
        return True

    return commands.check(predicate)


def admin_role_or_permissions(**perms: bool):
    """Pass for members holding the guild's configured admin role, else require `perms`."""

    async def predicate(ctx: commands.Context) -> bool:
        if ctx.guild is None:
            raise commands.NoPrivateMessage()
        if has_role(ctx.author, ctx.bot.core.config.get(ctx.guild.id).roles.admin_role):
            return True
        permissions = ctx.permissions
        missing = [name for name, value in perms.items() if getattr(permissions, name) != value]
        if missing:
            raise commands.MissingPermissions(missing)
        return True

    return commands.check(predicate)
