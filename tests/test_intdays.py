import datetime

import pytest
from discord.ext import commands

from conftest import ADMIN, CHANNEL, GUILD, LOGS_CHANNEL
from toadle_bot.cogs.intdays.intdays import InternationalDays, format_listing
from toadle_bot.utils import intdays

DAYS = {"03-08": ["International Women's Day"], "03-21": ["World Poetry Day", "International Day of Forests"]}


def test_bundled_calendar_loads():
    days = intdays.load_days()
    assert days["10-24"] == ["United Nations Day"]
    assert all(isinstance(names, list) for names in days.values())


def test_load_days_accepts_single_names(tmp_path):
    path = tmp_path / "days.yaml"
    path.write_text('"06-05": World Environment Day\n', encoding="utf-8")
    assert intdays.load_days(path) == {"06-05": ["World Environment Day"]}
    assert intdays.load_days(tmp_path / "missing.yaml") == {}


def test_upcoming_excludes_today_and_wraps_the_year():
    today = datetime.date(2025, 3, 8)
    assert intdays.todays(DAYS, today) == ["International Women's Day"]
    ahead = intdays.upcoming(DAYS, today)
    assert [name for _, name in ahead] == ["World Poetry Day", "International Day of Forests", "International Women's Day"]
    assert ahead[-1][0] == datetime.date(2026, 3, 8)
    assert len(intdays.upcoming(DAYS, today, limit=1)) == 1


def test_format_listing():
    text = format_listing(DAYS, datetime.date(2025, 3, 8), limit=2)
    assert text.startswith("🌐 **International Days**")
    assert "**🎉 Today:**\n• International Women's Day" in text
    assert "• 03/21 - World Poetry Day" in text
    assert "International Day of Forests" not in text

    assert "Today" not in format_listing(DAYS, datetime.date(2025, 3, 9))
    assert format_listing({}, datetime.date(2025, 3, 9)).endswith("No upcoming days found in the next year.")


@pytest.mark.asyncio
async def test_setintdayreminder_picks_a_channel(harness):
    await harness.load(InternationalDays)
    admin = harness.user(1)
    channels = harness.core.config.get(GUILD).channels

    res = await harness.run(admin, "!setintdayreminder", perms=ADMIN)
    assert res.reply == f"✅ International Day reminder channel set to <#{CHANNEL}>"
    assert channels.intday_reminder == str(CHANNEL)

    await harness.run(admin, f"!setintdayreminder <#{LOGS_CHANNEL}>", perms=ADMIN)
    assert harness.core.config.get(GUILD).channels.intday_reminder == str(LOGS_CHANNEL)

    res = await harness.run(harness.user(2), "!setintdayreminder")
    assert isinstance(res.error, commands.MissingPermissions)


@pytest.mark.asyncio
async def test_reminders_post_to_configured_channels(harness, monkeypatch):
    cog, = await harness.load(InternationalDays)
    cog.days = DAYS
    monkeypatch.setitem(harness.bot._connection._guilds, GUILD, harness.guild)

    assert await cog.post_reminders(datetime.date(2025, 3, 8)) == 0
    harness.core.config.update(GUILD, "channels.intday_reminder", str(LOGS_CHANNEL))
    assert await cog.post_reminders(datetime.date(2025, 3, 9)) == 0
    assert await cog.post_reminders(datetime.date(2025, 3, 21)) == 1
    assert harness.logs.texts == ["🌐 Today is...\n• World Poetry Day\n• International Day of Forests"]


@pytest.mark.asyncio
async def test_listintdays_works_in_dms(harness):
    await harness.load(InternationalDays)
    res = await harness.run(harness.user(1), "!intdays", dm=True)
    assert res.ok
    assert res.reply.startswith("🌐 **International Days**")
