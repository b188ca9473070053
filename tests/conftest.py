"""Offline command harness.

Commands run through a real `ToadleBot` (built by `create_bot`) and
discord.ext.commands' own checks, converters and cooldowns. Guilds, channels,
users and messages are small fakes, and replies are recorded instead of sent.
"""
import datetime
import itertools
import random
import re
from types import SimpleNamespace

import discord
import pytest
from discord.ext import commands, tasks
from discord.ext.commands.view import StringView

from toadle_bot.bot import create_bot
from toadle_bot.cogs.core.core import Core
from toadle_bot.config import Settings
from toadle_bot.utils import logger as toadle_logger
from toadle_bot.utils.checks import ToadleContext
from toadle_bot.utils.core import EconomyCore

GUILD = 424242424242424242
CHANNEL = 555555555555555555
LOGS_CHANNEL = 666666666666666666
BASE_ID = 100000000000000000
ADMIN = discord.Permissions(manage_guild=True, administrator=True, manage_messages=True, kick_members=True)
MODERATOR = discord.Permissions(kick_members=True, manage_messages=True)

_MENTION_RE = re.compile(r"<@!?(\d+)>")


def render(content, kwargs):
    embed = kwargs.get("embed")
    return content if embed is None else f"{embed.title}\n{embed.description}"


class FakeUser:
    def __init__(self, user_id, name, bot=False):
        self.id = user_id
        self.name = name
        self.display_name = name
        self.bot = bot
        self.roles = []
        self.mention = f"<@{user_id}>"
        self.display_avatar = SimpleNamespace(url=f"https://cdn.example.com/avatars/{user_id}.png")
        self.dms = []

    def __str__(self):
        return self.name

    async def send(self, content=None, **kwargs):
        self.dms.append(render(content, kwargs))


class SentMessage:
    def __init__(self, message_id, content, kwargs):
        self.id = message_id
        self.content = content
        self.kwargs = kwargs
        self.edits = []

    async def edit(self, **kwargs):
        self.edits.append(kwargs)


class FakeChannel:
    type = discord.ChannelType.text

    def __init__(self, channel_id, name, ids):
        self.id = channel_id
        self.name = name
        self.mention = f"<#{channel_id}>"
        self._ids = ids
        self.sent = []
        self.texts = []
        self.history = []
        self.partials = {}
        self.current_permissions = discord.Permissions.none()

    def __str__(self):
        return self.name

    def permissions_for(self, member):
        return self.current_permissions

    async def send(self, content=None, **kwargs):
        message = SentMessage(next(self._ids), content, kwargs)
        self.sent.append(message)
        self.texts.append(render(content, kwargs))
        return message

    def get_partial_message(self, message_id):
        return self.partials.setdefault(message_id, SentMessage(message_id, None, {}))

    async def purge(self, *, limit=100, check=lambda m: True, before=None):
        pool = self.history[:self.history.index(before)] if before in self.history else self.history
        # newest first, like channel history
        deleted = [m for m in reversed(pool[-limit:]) if check(m)]
        self.history = [m for m in self.history if m not in deleted]
        return deleted


class DMChannel(FakeChannel):
    type = discord.ChannelType.private


class FakeGuild:
    def __init__(self, guild_id, name):
        self.id = guild_id
        self.name = name
        self.members = {}
        self.channels = {}
        self.system_channel = None
        self.invite_list = []

    def get_member(self, user_id):
        return self.members.get(user_id)

    def get_channel(self, channel_id):
        return self.channels.get(channel_id)

    async def invites(self):
        return list(self.invite_list)


class FakeMessage:
    def __init__(self, harness, author, content, channel, guild, created_at):
        self._state = harness.bot._connection
        self.id = next(harness.ids)
        self.author = author
        self.content = content
        self.channel = channel
        self.guild = guild
        self.created_at = created_at
        self.edited_at = None
        self.deleted = False
        self.attachments = []
        self.mentions = [harness.users[int(uid)] for uid in _MENTION_RE.findall(content)
                         if int(uid) in harness.users]

    async def delete(self):
        self.deleted = True


class RecordingContext(ToadleContext):
    async def send(self, content=None, **kwargs):
        return await self.channel.send(content, **kwargs)


class Result:
    def __init__(self, ctx, error, replies):
        self.ctx = ctx
        self.error = error
        self.replies = replies

    @property
    def ok(self):
        return self.error is None

    @property
    def reply(self):
        return self.replies[-1] if self.replies else None


class Harness:
    def __init__(self, tmp_path):
        self.core = EconomyCore(data_dir=tmp_path, rng=random.Random(11), confirm_timeout=60, referral_bonus=50)
        self.bot = create_bot(Settings(), core=self.core)
        self.ids = itertools.count(BASE_ID + 900000)
        self.users = {}
        self.guild = FakeGuild(GUILD, "Pond")
        self.channel = FakeChannel(CHANNEL, "general", self.ids)
        self.logs = FakeChannel(LOGS_CHANNEL, "mod-log", self.ids)
        self.guild.channels = {CHANNEL: self.channel, LOGS_CHANNEL: self.logs}
        self.now = datetime.datetime.now(datetime.timezone.utc)
        # every run lands this long after the previous one so cooldowns stay out of the way
        self.step = datetime.timedelta(hours=1)
        self.core_cog = None

        async def fetch_user(user_id):
            if user_id in self.users:
                return self.users[user_id]
            raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown User")

        self.bot.fetch_user = fetch_user

    def user(self, n, name=None, bot=False):
        uid = BASE_ID + n
        if uid not in self.users:
            self.users[uid] = FakeUser(uid, name or f"user{n}", bot=bot)
            self.guild.members[uid] = self.users[uid]
        return self.users[uid]

    async def load(self, *cog_classes):
        self.core_cog = Core(self.bot)
        await self.bot.add_cog(self.core_cog)
        cogs = []
        for cls in cog_classes:
            cog = cls(self.bot)
            await self.bot.add_cog(cog)
            # background loops need a connected client
            for name, value in vars(cls).items():
                if isinstance(value, tasks.Loop):
                    getattr(cog, name).cancel()
            cogs.append(cog)
        # cooldown buckets live on the decorated callbacks and are shared by every bot instance
        for command in self.bot.walk_commands():
            command._buckets._cache.clear()
        return cogs

    async def run(self, user, text, perms=None, dm=False):
        channel = DMChannel(next(self.ids), "dm", self.ids) if dm else self.channel
        channel.current_permissions = perms if perms is not None else discord.Permissions.none()
        self.now += self.step
        message = FakeMessage(self, user, text, channel, None if dm else self.guild, self.now)
        channel.history.append(message)
        start = len(channel.texts)

        prefix = await self.bot.get_prefix(message)
        view = StringView(text)
        if not view.skip_string(prefix):
            return Result(None, None, [])
        invoker = view.get_word()
        ctx = RecordingContext(prefix=prefix, view=view, bot=self.bot, message=message,
                               invoked_with=invoker, command=self.bot.all_commands.get(invoker))
        error = None
        try:
            if ctx.command is None:
                raise commands.CommandNotFound(f'Command "{invoker}" is not found')
            await ctx.command.invoke(ctx)
        except commands.CommandError as exc:
            error = exc
            await self.core_cog.on_command_error(ctx, exc)
        return Result(ctx, error, channel.texts[start:])


@pytest.fixture
def harness(tmp_path, monkeypatch):
    monkeypatch.setattr(toadle_logger, "ARCHIVE_PATH", tmp_path / "logs.jsonl")
    yield Harness(tmp_path)
    toadle_logger.stop_background_writer()
