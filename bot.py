"""
Bot entry point.

Logs in with ``DISCORD_TOKEN`` and loads the ChatGPT extension once the
bot's own identity is known.
"""

import os
import logging

import discord
from discord.ext import commands
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

EXTENSIONS = ["cogs.chatgpt"]

# Mentions belong to the ChatGPT relay; text commands use this prefix
COMMAND_PREFIX = "!"


class Bot(commands.Bot):
    def __init__(self):
        # Create intents
        intents = discord.Intents.default()
        intents.message_content = True

        super().__init__(command_prefix=COMMAND_PREFIX, intents=intents)

    async def setup_hook(self) -> None:
        # Runs after login, so self.user is populated for the cogs
        for extension in EXTENSIONS:
            await self.load_extension(extension)
            logger.info(f"Loaded extension {extension}")

        # Sync commands
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} commands")
        except discord.HTTPException as e:
            logger.error(f"Command sync failed: {e}")


def main() -> None:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise SystemExit("DISCORD_TOKEN is not set")

    Bot().run(token, log_handler=None)


if __name__ == "__main__":
    main()
