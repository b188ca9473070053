from __future__ import annotations

from discord.ext import commands

from toadle_bot.utils import helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext
from toadle_bot.utils.guild_config import FEATURES

CHANNEL_KEYS = {
    "welcome": "welcome",
    "leave": "leave",
    "logs": "logs",
    "interest": "interest_notification",
    "intday": "intday_reminder",
}
ROLE_KEYS = {"admin": "admin_role", "moderator": "moderator_role"}

USAGE = "\n".join([
    "configset prefix <1-3 chars>",
    "configset earn|daily <min> <max>",
    "configset crime chance <percent>",
    "configset crime rewards|fines <min> <max>",
    "configset invest fail_chance <percent>",
    "configset invest multiplier <min> <max>",
    "configset interest <percent>",
    f"configset channel <{'|'.join(CHANNEL_KEYS)}> <#channel|none>",
    "configset role <admin|moderator> <role name>",
    f"configset feature <{'|'.join(FEATURES)}> <true|false>",
])


def _percent(text: str) -> float:
    value = helpers.parse_float(text.rstrip("%"))
    if value is None or not 0 <= value <= 100:
        raise CommandFailed("Percentages must be numbers between 0 and 100.")
    return value / 100


class Config(commands.Cog):
    """Per-server settings: prefix, economy tunables, channels, roles and feature toggles."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def cog_check(self, ctx: ToadleContext) -> bool:
        if ctx.guild is None:
            raise commands.NoPrivateMessage()
        return await commands.has_permissions(manage_guild=True).predicate(ctx)

    def _apply(self, ctx: ToadleContext, path: str, value) -> None:
        if not ctx.core.config.update(ctx.guild_id, path, value):
            raise CommandFailed(f"Invalid value for `{path}`.")

    async def _set_range(self, ctx: ToadleContext, path: str, low: str, high: str) -> None:
        lo, hi = helpers.parse_float(low), helpers.parse_float(high)
        if lo is None or hi is None:
            raise CommandFailed("Range bounds must be numbers.")
        if not ctx.core.config.update_range(ctx.guild_id, path, lo, hi):
            raise CommandFailed("Minimum must be at least 1 and maximum must not be below minimum.")
        await ctx.send(f"✅ `{path}` set to {low}-{high}.")

    async def _set_percent(self, ctx: ToadleContext, path: str, percent: str) -> None:
        self._apply(ctx, path, _percent(percent))
        await ctx.send(f"✅ `{path}` set to {percent.rstrip('%')}%.")

    @commands.group(name="configset", aliases=["config"], invoke_without_command=True, case_insensitive=True,
                    usage="configset <setting> <values...>")
    async def configset(self, ctx: ToadleContext):
        """Change a server setting."""
        if ctx.subcommand_passed:
            raise CommandFailed(f"Unknown setting. Usage:\n```\n{USAGE}\n```")
        raise CommandFailed(f"Usage:\n```\n{USAGE}\n```")

    @configset.command(name="prefix", usage="configset prefix <1-3 chars>")
    async def set_prefix(self, ctx: ToadleContext, prefix: str):
        self._apply(ctx, "prefix", prefix)
        await ctx.send(f"✅ Prefix set to `{prefix}`.")

    @configset.command(name="earn", usage="configset earn <min> <max>")
    async def set_earn(self, ctx: ToadleContext, low: str, high: str):
        await self._set_range(ctx, "economy.earn_range", low, high)

    @configset.command(name="daily", usage="configset daily <min> <max>")
    async def set_daily(self, ctx: ToadleContext, low: str, high: str):
        await self._set_range(ctx, "economy.daily_bonus", low, high)

    @configset.command(name="interest", usage="configset interest <percent>")
    async def set_interest(self, ctx: ToadleContext, percent: str):
        await self._set_percent(ctx, "economy.bank_interest_rate", percent)

    @configset.group(name="crime", invoke_without_command=True, case_insensitive=True,
                     usage="configset crime chance|rewards|fines <values...>")
    async def crime(self, ctx: ToadleContext):
        raise ctx.usage_error()

    @crime.command(name="chance", usage="configset crime chance <percent>")
    async def crime_chance(self, ctx: ToadleContext, percent: str):
        await self._set_percent(ctx, "economy.crime.success_chance", percent)

    @crime.command(name="rewards", usage="configset crime rewards <min> <max>")
    async def crime_rewards(self, ctx: ToadleContext, low: str, high: str):
        await self._set_range(ctx, "economy.crime.reward_range", low, high)

    @crime.command(name="fines", usage="configset crime fines <min> <max>")
    async def crime_fines(self, ctx: ToadleContext, low: str, high: str):
        await self._set_range(ctx, "economy.crime.fine_range", low, high)

    @configset.group(name="invest", invoke_without_command=True, case_insensitive=True,
                     usage="configset invest fail_chance|multiplier <values...>")
    async def invest(self, ctx: ToadleContext):
        raise ctx.usage_error()

    @invest.command(name="fail_chance", usage="configset invest fail_chance <percent>")
    async def invest_fail_chance(self, ctx: ToadleContext, percent: str):
        await self._set_percent(ctx, "economy.invest.fail_chance", percent)

    @invest.command(name="multiplier", usage="configset invest multiplier <min> <max>")
    async def invest_multiplier(self, ctx: ToadleContext, low: str, high: str):
        await self._set_range(ctx, "economy.invest.multiplier_range", low, high)

    @configset.command(name="channel", usage=f"configset channel <{'|'.join(CHANNEL_KEYS)}> <#channel|none>")
    async def set_channel(self, ctx: ToadleContext, key: str, target: str):
        key = key.lower()
        if key not in CHANNEL_KEYS:
            raise ctx.usage_error()
        clear = target.lower() == "none"
        channel_id = None if clear else helpers.parse_channel(target)
        if channel_id is None and not clear:
            raise CommandFailed("Please mention a channel like #general, or `none` to clear it.")
        self._apply(ctx, f"channels.{CHANNEL_KEYS[key]}", channel_id)
        await ctx.send(f"✅ {key.title()} channel set to " + (f"<#{channel_id}>." if channel_id else "nothing."))

    @configset.command(name="role", usage="configset role <admin|moderator> <role name>")
    async def set_role(self, ctx: ToadleContext, key: str, *, name: str):
        key = key.lower()
        if key not in ROLE_KEYS:
            raise ctx.usage_error()
        self._apply(ctx, f"roles.{ROLE_KEYS[key]}", name)
        await ctx.send(f"✅ {key.title()} role set to **{name}**.")

    @configset.command(name="feature", usage=f"configset feature <{'|'.join(FEATURES)}> <true|false>")
    async def set_feature(self, ctx: ToadleContext, name: str, value: str):
        name = name.lower()
        if name not in FEATURES:
            raise CommandFailed(f"Unknown feature. Choose one of: {', '.join(FEATURES)}")
        self._apply(ctx, f"features.{name}", value.lower())
        await ctx.send(f"✅ Feature `{name}` set to {value.lower()}.")

    @commands.command(name="configshow", aliases=["settings"])
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def configshow(self, ctx: ToadleContext):
        """Show this server's settings."""
        cfg = ctx.core.config.get(ctx.guild_id)
        eco = cfg.economy

        def chan(cid):
            return f"<#{cid}>" if cid else "not set"

        def on(flag):
            return "✅" if flag else "❌"

        embed = helpers.make_embed("⚙️ Server Configuration", f"Prefix: `{cfg.prefix}`", colour=helpers.COLOUR_INFO)
        embed.add_field(name="Economy", inline=False, value="\n".join([
            f"Earn: {eco.earn_range[0]}-{eco.earn_range[1]}",
            f"Daily bonus: {eco.daily_bonus[0]}-{eco.daily_bonus[1]}",
            f"Crime: {eco.crime.success_chance * 100:g}% success, rewards {eco.crime.reward_range[0]}-{eco.crime.reward_range[1]}, "
            f"fines {eco.crime.fine_range[0]}-{eco.crime.fine_range[1]}",
            f"Invest: {eco.invest.fail_chance * 100:g}% fail, x{eco.invest.multiplier_range[0]:g}-{eco.invest.multiplier_range[1]:g}",
            f"Bank interest: {eco.bank_interest_rate * 100:g}% daily",
        ]))
        embed.add_field(name="Channels", value="\n".join([
            f"Welcome: {chan(cfg.channels.welcome)}",
            f"Leave: {chan(cfg.channels.leave)}",
            f"Logs: {chan(cfg.channels.logs)}",
            f"Interest: {chan(cfg.channels.interest_notification)}",
            f"International days: {chan(cfg.channels.intday_reminder)}",
        ]))
        embed.add_field(name="Roles", value=f"Admin: {cfg.roles.admin_role}\nModerator: {cfg.roles.moderator_role}")
        embed.add_field(name="Features", inline=False, value="\n".join(
            f"{on(getattr(cfg.features, f))} {f}" for f in FEATURES
        ))
        await ctx.send(embed=embed)


async def setup(bot: commands.Bot):
    await bot.add_cog(Config(bot))
