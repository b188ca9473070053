from __future__ import annotations

from typing import Optional

import discord
from discord.ext import commands

from toadle_bot.utils import helpers
from toadle_bot.utils.checks import CommandFailed, ToadleContext
from toadle_bot.utils.ledger import BADGES, LINK_PLATFORMS, MAX_BIO_LENGTH

BADGE_EMOJI = {
    "first-referral": "🎖️",
    "crime-master": "🕵️",
    "investor": "💼",
    "3-day-streak": "🔥",
    "7-day-streak": "🏆",
    "store-champion": "🛒",
    "gambling-addict": "🎲",
    "community-helper": "🤝",
    "early-adopter": "⭐",
}


def _badge(text: str) -> str:
    badge = text.lower()
    if badge not in BADGES:
        raise CommandFailed(f"Invalid badge ID. Available badges: {', '.join(BADGES)}")
    return badge


class Profile(commands.Cog):
    """Cosmetic user profiles: bio, social links and badges."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.group(name="profile", invoke_without_command=True, usage="profile [@user]")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def profile(self, ctx: ToadleContext, user: Optional[discord.User] = None):
        """Show a profile card."""
        target = user or ctx.author
        account = ctx.core.ledger.peek_account(target.id)
        if account is None:
            raise CommandFailed("No profile data found for that user.")

        embed = helpers.make_embed(str(target), account.bio or "No bio set.", colour=helpers.COLOUR_INFO)
        embed.set_thumbnail(url=target.display_avatar.url)
        embed.add_field(name="💰 Balance", value=f"{account.balance:,}")
        embed.add_field(name="🏦 Bank", value=f"{account.bank_balance:,}")
        embed.add_field(name="🔄 Total Earned", value=f"{account.total_earned:,}")
        embed.add_field(name="👥 Referrals", value=str(account.referrals))
        if account.links:
            embed.add_field(
                name="🔗 Links",
                value=" • ".join(f"[{platform}]({url})" for platform, url in account.links.items()),
                inline=False,
            )
        if account.badges:
            embed.add_field(
                name="🏷️ Badges",
                value=" ".join(BADGE_EMOJI.get(b, b) for b in account.badges),
                inline=False,
            )
        await ctx.send(embed=embed)

    @commands.command(name="setbio", aliases=["bio"], usage="setbio <text>")
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def setbio(self, ctx: ToadleContext, *, bio: str):
        if not ctx.core.ledger.set_bio(ctx.author.id, bio):
            raise CommandFailed(f"Bio must be {MAX_BIO_LENGTH} characters or fewer.")
        await ctx.send("✅ Bio updated.")

    @commands.command(name="addlink", usage="addlink <platform> <url>")
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def addlink(self, ctx: ToadleContext, platform: str, url: str):
        platform = platform.lower()
        if platform not in LINK_PLATFORMS:
            raise CommandFailed(f"Unsupported platform. Choose one of: {', '.join(LINK_PLATFORMS)}")
        if not ctx.core.ledger.add_link(ctx.author.id, platform, url):
            raise CommandFailed("Links must start with http:// or https://")
        await ctx.send(f"✅ Added {platform} link to your profile.")

    @commands.command(name="removelink", usage="removelink <platform>")
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def removelink(self, ctx: ToadleContext, platform: str):
        if not ctx.core.ledger.remove_link(ctx.author.id, platform):
            raise CommandFailed(f"You don't have a {platform.lower()} link.")
        await ctx.send(f"✅ Removed {platform.lower()} link from your profile.")

    @commands.command(name="badges")
    @commands.cooldown(1, 5, commands.BucketType.user)
    async def badges(self, ctx: ToadleContext):
        """List the badges that can be granted."""
        lines = [f"{BADGE_EMOJI.get(b, '•')} `{b}`" for b in BADGES]
        await ctx.send(embed=helpers.make_embed("🏷️ Available Badges", "\n".join(lines), colour=helpers.COLOUR_INFO))

    @commands.group(name="badge", invoke_without_command=True, usage="badge grant|revoke <@user> <badge>")
    async def badge(self, ctx: ToadleContext):
        """Grant or revoke profile badges."""
        raise ctx.usage_error()

    async def _grant(self, ctx: ToadleContext, target: discord.User, badge: str) -> None:
        badge = _badge(badge)
        if not ctx.core.ledger.grant_badge(target.id, badge):
            raise CommandFailed(f"{target} already has the {badge} badge.")
        await ctx.send(f'✅ Granted badge "{badge}" to {target}!')

    async def _revoke(self, ctx: ToadleContext, target: discord.User, badge: str) -> None:
        badge = _badge(badge)
        if not ctx.core.ledger.revoke_badge(target.id, badge):
            raise CommandFailed(f"{target} doesn't have the {badge} badge.")
        await ctx.send(f'✅ Revoked badge "{badge}" from {target}!')

    @profile.command(name="grant", usage="profile grant <@user> <badge>")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def grant_badge(self, ctx: ToadleContext, target: discord.User, badge: str):
        await self._grant(ctx, target, badge)

    @profile.command(name="revoke", usage="profile revoke <@user> <badge>")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def revoke_badge(self, ctx: ToadleContext, target: discord.User, badge: str):
        await self._revoke(ctx, target, badge)

    @badge.command(name="grant", usage="badge grant <@user> <badge>")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def badge_grant(self, ctx: ToadleContext, target: discord.User, badge: str):
        await self._grant(ctx, target, badge)

    @badge.command(name="revoke", usage="badge revoke <@user> <badge>")
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    @commands.cooldown(1, 3, commands.BucketType.user)
    async def badge_revoke(self, ctx: ToadleContext, target: discord.User, badge: str):
        await self._revoke(ctx, target, badge)


async def setup(bot: commands.Bot):
    await bot.add_cog(Profile(bot))
