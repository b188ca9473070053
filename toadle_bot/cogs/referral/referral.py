"""Referral cog.

Members register the invite codes they hand out with `reginvurl`; people who
joined through one run `claiminvite <code>` once to reward the inviter. New
members get a DM (or a system-channel fallback) explaining how to claim.

The cog also keeps a snapshot of every guild's invite use counts so a join
through a registered invite is logged as soon as it happens.
"""
from __future__ import annotations

import logging
from typing import List

import discord
from discord.ext import commands

from toadle_bot.utils import helpers, referrals
from toadle_bot.utils.checks import CommandFailed, ToadleContext
from toadle_bot.utils.invites import InviteUse, record_join
from toadle_bot.utils.logger import enqueue_log

logger = logging.getLogger("toadle.referral")

CLAIM_FAILURES = {
    referrals.ALREADY_CLAIMED: "You have already claimed a referral bonus! Each user can only claim one referral reward.",
    referrals.INVALID_CODE: "This invite code is not registered or does not exist. Ask your inviter to register it with `reginvurl`.",
    referrals.SELF_REFERRAL: "You cannot refer yourself! Nice try though 😉",
}


class Referral(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.command(name="reginvurl", aliases=["reginvite", "register", "reg"],
                      usage="reginvurl <invite code or URL>")
    @commands.guild_only()
    @commands.cooldown(1, 30, commands.BucketType.user)
    async def reginvurl(self, ctx: ToadleContext, invite: str):
        """Register an invite code you hand out."""
        code = referrals.parse_invite_code(invite)
        if code is None:
            raise CommandFailed("That doesn't look like a valid invite code (2-20 letters or digits).")
        ctx.core.ledger.get_or_create_account(ctx.author.id, ctx.guild_id)
        result = ctx.core.referrals.register_invite(code, ctx.author.id)
        if result.status == referrals.ALREADY_YOURS:
            raise CommandFailed(f"You have already registered `{code}`.")
        if result.status == referrals.TAKEN:
            raise CommandFailed(f"`{code}` is already registered by another user.")
        enqueue_log({"type": "referral", "action": "register", "code": code,
                     "inviter_id": str(ctx.author.id), "guild_id": ctx.guild_id})
        await ctx.send(embed=helpers.make_embed(
            "✅ Invite Registered",
            f"Invite `{code}` is now yours. Anyone who joins with it can run `{ctx.prefix}claiminvite {code}` "
            f"and you'll earn {helpers.format_coins(ctx.core.referrals.bonus)}.",
            colour=helpers.COLOUR_OK,
        ))

    @commands.command(name="claiminvite", aliases=["claim", "claimref", "ref"], usage="claiminvite <invite code>")
    @commands.guild_only()
    @commands.cooldown(1, 60, commands.BucketType.user)
    async def claiminvite(self, ctx: ToadleContext, invite: str):
        """Claim the referral for the invite you joined with."""
        code = referrals.parse_invite_code(invite) or invite
        ctx.core.ledger.get_or_create_account(ctx.author.id, ctx.guild_id)
        result = ctx.core.referrals.claim(code, ctx.author.id)
        if not result.success:
            raise CommandFailed(CLAIM_FAILURES.get(result.reason, "Unable to process referral claim."))

        enqueue_log({
            "type": "referral",
            "action": "claim",
            "code": code,
            "claimer_id": str(ctx.author.id),
            "inviter_id": result.inviter_id,
            "bonus": result.bonus,
            "guild_id": ctx.guild_id,
        })
        await ctx.send(embed=helpers.make_embed(
            "🎉 Referral Claimed Successfully!",
            f"Thank you for joining through a referral! <@{result.inviter_id}> earned {helpers.format_coins(result.bonus)}.",
            colour=helpers.COLOUR_OK,
        ))
        await self._notify_inviter(ctx, result.inviter_id, result.bonus)

    async def _notify_inviter(self, ctx: ToadleContext, inviter_id: str, bonus: int) -> None:
        try:
            inviter = await self.bot.fetch_user(int(inviter_id))
            account = ctx.core.ledger.peek_account(inviter_id)
            await inviter.send(embed=helpers.make_embed(
                "🎊 Referral Bonus Earned!",
                f"{ctx.author.display_name} just claimed your referral! You earned {helpers.format_coins(bonus)}."
                + (f"\nTotal referrals: {account.referrals}" if account else ""),
                colour=helpers.COLOUR_OK,
            ))
        except discord.HTTPException as exc:
            logger.debug("Could not DM inviter %s: %s", inviter_id, exc)

    @commands.command(name="myinvites", aliases=["invites"])
    @commands.cooldown(1, 10, commands.BucketType.user)
    async def myinvites(self, ctx: ToadleContext):
        """List the invites you registered."""
        regs = ctx.core.referrals.invites_for(ctx.author.id)
        account = ctx.core.ledger.peek_account(ctx.author.id)
        lines = [f"`{r.code}` used {r.uses} times" for r in regs]
        embed = helpers.make_embed("📨 Your Invites", "\n".join(lines) or "You haven't registered any invites.",
                                   colour=helpers.COLOUR_INFO)
        embed.add_field(name="Total referrals", value=str(account.referrals if account else 0))
        await ctx.send(embed=embed)

    # ----- invite use tracking
    async def refresh_invites(self, guild: discord.Guild) -> None:
        try:
            invites = await guild.invites()
        except discord.HTTPException as exc:
            # needs Manage Server; without it joins just aren't matched to invites
            logger.debug("Cannot read invites for guild %s: %s", guild.id, exc)
            return
        self.bot.core.invites.snapshot(guild.id, invites)

    async def track_join(self, member: discord.Member) -> List[InviteUse]:
        core = self.bot.core
        try:
            invites = await member.guild.invites()
        except discord.HTTPException as exc:
            logger.debug("Cannot read invites for guild %s: %s", member.guild.id, exc)
            return []
        return record_join(core.invites, core.referrals, member.guild.id, member.id, invites)

    @commands.Cog.listener()
    async def on_ready(self):
        for guild in self.bot.guilds:
            await self.refresh_invites(guild)

    @commands.Cog.listener()
    async def on_guild_join(self, guild: discord.Guild):
        await self.refresh_invites(guild)

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild):
        self.bot.core.invites.forget(guild.id)

    @commands.Cog.listener()
    async def on_invite_create(self, invite: discord.Invite):
        if invite.guild is not None:
            await self.refresh_invites(invite.guild)

    @commands.Cog.listener()
    async def on_invite_delete(self, invite: discord.Invite):
        if invite.guild is not None:
            await self.refresh_invites(invite.guild)

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member):
        if member.bot:
            return
        core = self.bot.core
        core.ledger.get_or_create_account(member.id, member.guild.id)
        await self.track_join(member)
        if not core.config.is_feature_enabled(member.guild.id, "welcome_messages"):
            return
        if core.referrals.has_claimed(member.id):
            return
        prefix = core.config.prefix(member.guild.id)
        embed = helpers.make_embed(
            f"👋 Welcome to {member.guild.name}!",
            f"Were you invited by someone? Run `{prefix}claiminvite <invite code>` in the server "
            "to reward them with a referral bonus.",
            colour=helpers.COLOUR_INFO,
        )
        try:
            await member.send(embed=embed)
            return
        except discord.HTTPException:
            logger.debug("DMs closed for %s; falling back to the welcome channel", member.id)
        channel_id = core.config.get(member.guild.id).channels.welcome
        channel = member.guild.get_channel(int(channel_id)) if channel_id else member.guild.system_channel
        if channel is None:
            return
        try:
            await channel.send(content=member.mention, embed=embed)
        except discord.HTTPException:
            logger.exception("Failed to send referral prompt in guild %s", member.guild.id)


async def setup(bot: commands.Bot):
    await bot.add_cog(Referral(bot))
