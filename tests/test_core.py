from types import SimpleNamespace

import pytest
from discord.ext import commands

from conftest import ADMIN, GUILD
from toadle_bot.cogs.core.core import error_reply
from toadle_bot.cogs.economy.store import Store
from toadle_bot.utils import checks


def fake_ctx(usage="pay @user <amount>"):
    command = SimpleNamespace(usage=usage, qualified_name="pay", signature="")
    return SimpleNamespace(prefix="!", command=command, usage=lambda: f"!{usage}")


@pytest.mark.parametrize("error, reply", [
    (checks.FeatureDisabled("gambling_enabled"), checks.DISABLED_REPLY),
    (commands.NoPrivateMessage(), checks.GUILD_ONLY_REPLY),
    (commands.MissingPermissions(["manage_guild"]), checks.NO_PERMISSION_REPLY),
    (commands.CheckFailure(), checks.NO_PERMISSION_REPLY),
    (commands.UserNotFound("<@1>"), checks.USER_NOT_FOUND_REPLY),
    (commands.BadArgument("nope"), "❌ Usage: `!pay @user <amount>`"),
    (commands.TooManyArguments(), "❌ Usage: `!pay @user <amount>`"),
    (checks.CommandFailed("Not today."), "❌ Not today."),
    (commands.CommandInvokeError(RuntimeError("boom")), checks.GENERIC_ERROR_REPLY),
])
def test_error_reply(error, reply):
    assert error_reply(fake_ctx(), error) == reply


def test_cooldown_reply_rounds_up():
    cooldown = commands.Cooldown(1, 30)
    error = commands.CommandOnCooldown(cooldown, 12.2, commands.BucketType.user)
    assert error_reply(fake_ctx(), error) == "⏱️ Please wait 13 seconds before using this command again."


def test_has_role_matches_by_name():
    member = SimpleNamespace(roles=[SimpleNamespace(name="Admin")])
    assert checks.has_role(member, "Admin")
    assert not checks.has_role(member, "Moderator")
    assert not checks.has_role(SimpleNamespace(), "Admin")


@pytest.mark.asyncio
async def test_admin_role_stands_in_for_permissions(harness):
    await harness.load(Store)
    boss, owner, nobody = harness.user(1), harness.user(2), harness.user(3)
    boss.roles = [SimpleNamespace(name="Admin")]

    assert (await harness.run(boss, "!storeadd cape 40 A fine cape")).ok
    assert (await harness.run(owner, "!storeremove cape", perms=ADMIN)).ok
    res = await harness.run(nobody, "!storeadd hat 10")
    assert isinstance(res.error, commands.MissingPermissions)
    assert res.reply == checks.NO_PERMISSION_REPLY

    harness.core.config.update(GUILD, "roles.admin_role", "Toad Lord")
    res = await harness.run(boss, "!storeadd hat 10")
    assert res.reply == checks.NO_PERMISSION_REPLY


@pytest.mark.asyncio
async def test_admin_role_check_needs_a_guild(harness):
    await harness.load(Store)
    res = await harness.run(harness.user(1), "!storeadd hat 10", perms=ADMIN, dm=True)
    assert res.reply == checks.GUILD_ONLY_REPLY


@pytest.mark.asyncio
async def test_usage_prefers_declared_usage(harness):
    await harness.load(Store)
    res = await harness.run(harness.user(1), "!storeadd hat", perms=ADMIN)
    assert isinstance(res.error, commands.MissingRequiredArgument)
    assert res.reply == "❌ Usage: `!storeadd <key> <price> [description]`"
