"""
ChatGPT Cog for Discord Bot
===========================

Answers messages that start with a mention of the bot by relaying them to
ChatGPT and editing a placeholder reply with the result.
"""

import discord
from discord.ext import commands
from typing import Callable, Optional

import logging

from .config import ChatGPTConfig
from .rate_limiter import RateLimiter, MAX_CONCURRENT_REQUESTS
from .safety import SafetyFilter
from .storage import KeyValueStore
from .providers import ChatGPTClient
from .exceptions import (
    ChatException,
    ConfigurationException,
    StorageException
)

# Configure logging
logger = logging.getLogger(__name__)

ANSWERED_KEY = "gpt_answered"
TOKEN_KEY = "gpt_token"

BUSY_REACTION = "💬"
WAITING_MESSAGE = "📨 Waiting for ChatGPT response..."
ERROR_PREFIX = "⚠️ ChatGPT encountered an error: "


class MentionResponder(commands.Cog):
    """
    Relays mentions of the bot to ChatGPT.

    At most three requests are in flight at once; further mentions get a
    reaction and are dropped. Dispatches are spaced by the configured
    cooldown.
    """

    def __init__(
        self,
        bot: commands.Bot,
        config: Optional[ChatGPTConfig] = None,
        storage: Optional[KeyValueStore] = None,
        client_factory: Callable[..., ChatGPTClient] = ChatGPTClient
    ):
        self.bot = bot

        # Initialize configuration
        self.config = config or ChatGPTConfig.from_env()

        # Set up logging level
        logging.getLogger(__package__).setLevel(
            getattr(logging, self.config.log_level, logging.INFO)
        )

        self.storage = storage or KeyValueStore(self.config.storage_path)
        self.safety_filter = SafetyFilter(denylist=self.config.denylist)
        self.rate_limiter = RateLimiter(
            max_concurrent=MAX_CONCURRENT_REQUESTS,
            cooldown=self.config.cooldown
        )

        self._client_factory = client_factory
        self.api: Optional[ChatGPTClient] = None
        self.mention: Optional[str] = None
        self._mention_prefixes: tuple = ()
        self.answered = 0
        self.token: Optional[str] = None

    async def cog_load(self) -> None:
        """Resolve identity, persisted state and the ChatGPT client."""
        if self.bot.user is None:
            raise ConfigurationException("Bot identity is not available yet; load the cog after login")

        bot_id = self.bot.user.id
        self.mention = f"<@{bot_id}>"
        self._mention_prefixes = (self.mention, f"<@!{bot_id}>")

        # Total amount of answered messages
        await self.storage.set_if_not_exists(ANSWERED_KEY, "0")
        raw_answered = self.storage.get(ANSWERED_KEY)
        try:
            self.answered = int(raw_answered)
        except (TypeError, ValueError):
            raise StorageException(f"Stored '{ANSWERED_KEY}' is not an integer: {raw_answered!r}")

        await self.storage.set_if_not_exists(TOKEN_KEY, self.config.token)
        self.token = self.storage.get(TOKEN_KEY)

        self.api = self._client_factory(
            self.token,
            base_url=self.config.base_url,
            model=self.config.model
        )

        logger.info(f"ChatGPT cog loaded (answered so far: {self.answered})")

    async def cog_unload(self) -> None:
        """Clean up when cog is unloaded."""
        if self.api is not None:
            await self.api.close()
        logger.info("ChatGPT cog unloaded")

    # ==================== Message Listener ====================

    def _strip_mention(self, content: str) -> Optional[str]:
        """Return the text after the mention, or None if not addressed to us."""
        for prefix in self._mention_prefixes:
            if content.startswith(prefix):
                return content[len(prefix):].strip() or None
        return None

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """Answer messages that start with a mention of the bot."""
        content = self._strip_mention(message.content)
        if not content:
            return

        # Too many requests are currently being processed
        if not self.rate_limiter.try_acquire():
            try:
                await message.add_reaction(BUSY_REACTION)
            except discord.HTTPException as e:
                logger.warning(f"Could not react to busy message {message.id}: {e}")
            return

        logger.info(f"📥 IN ({message.id}): {content[:100]}")

        async with self.rate_limiter.slot():
            await self._process_request(message, content)

    async def _process_request(self, message: discord.Message, content: str) -> None:
        await self.rate_limiter.wait_cooldown()

        try:
            placeholder = await message.reply(WAITING_MESSAGE, mention_author=False)
        except discord.HTTPException as e:
            logger.warning(f"Could not post placeholder for message {message.id}: {e}")
            return

        try:
            await self._refresh_token()
            answer = await self.api.send_message(content, timeout_ms=self.config.timeout_ms)
        except ChatException as e:
            logger.warning(f"ChatGPT request for message {message.id} failed: {e}")
            await self.edit(placeholder, ERROR_PREFIX + str(e))
            return
        except Exception as e:
            logger.error(f"Unexpected ChatGPT error for message {message.id}: {e}", exc_info=True)
            await self.edit(placeholder, ERROR_PREFIX + str(e))
            return

        logger.info(f"📤 OUT ({message.id}): {len(answer)} chars")
        await self.edit(placeholder, self.validate(answer))

    async def _refresh_token(self) -> None:
        token = await self.api.ensure_auth()
        if token != self.token:
            logger.info("🔄 Session token changed, persisting")
            self.token = token
            await self._persist(TOKEN_KEY, token)

    async def _persist(self, key: str, value: str) -> None:
        try:
            await self.storage.set(key, value)
        except StorageException as e:
            logger.error(f"Failed to persist '{key}': {e}")

    # ==================== Helper Methods ====================

    def validate(self, text: str) -> str:
        """Swap unacceptable responses for a fixed notice."""
        return self.safety_filter.validate(text)

    async def edit(self, message: discord.Message, content: str) -> bool:
        """
        Replace the placeholder's content and update the answered counter.

        The counter is persisted after every attempt, even a failed one.
        """
        try:
            await message.edit(
                content=content,
                allowed_mentions=discord.AllowedMentions.none()
            )
            successful = True
        except discord.HTTPException as e:
            logger.warning(f"Could not edit message {message.id}: {e}")
            successful = False

        if successful:
            self.answered += 1
        await self._persist(ANSWERED_KEY, str(self.answered))
        return successful

    # ==================== Commands ====================

    @commands.hybrid_command(
        name="gptstats",
        description="View ChatGPT relay statistics"
    )
    async def gpt_stats(self, ctx: commands.Context) -> None:
        """Show how many questions were answered and the current load."""
        stats = self.rate_limiter.get_global_stats()

        embed = discord.Embed(
            title="📊 ChatGPT Statistics",
            color=discord.Color.blue(),
            timestamp=discord.utils.utcnow()
        )

        embed.add_field(
            name="Answers",
            value=f"Total Answered: {self.answered}",
            inline=True
        )

        embed.add_field(
            name="Load",
            value=(
                f"In Flight: {stats['in_flight']}/{stats['max_concurrent']}\n"
                f"Total Rejected: {stats['total_blocked']}"
            ),
            inline=True
        )

        embed.add_field(
            name="Limits",
            value=(
                f"Cooldown: {self.config.cooldown_ms}ms\n"
                f"Timeout: {self.config.timeout_ms}ms"
            ),
            inline=False
        )

        await ctx.send(embed=embed)

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        """Log when the cog is ready."""
        logger.info("="*50)
        logger.info("🤖 ChatGPT Cog is READY!")
        logger.info(f"✅ Mention prefix: {self.mention}")
        logger.info(f"✅ Max concurrent requests: {self.rate_limiter.max_concurrent}")
        logger.info(f"✅ Cooldown: {self.config.cooldown_ms}ms, timeout: {self.config.timeout_ms}ms")
        logger.info("="*50)


async def setup(bot: commands.Bot) -> None:
    """Set up the ChatGPT cog."""
    await bot.add_cog(MentionResponder(bot))
