"""
Response Safety Filter
======================

Checks ChatGPT answers before they are posted to Discord.
"""

import re
import logging
from typing import Iterable, Optional, Pattern

logger = logging.getLogger(__name__)

# Regex fragments, matched case-insensitively and only when not embedded in
# a longer word. Override with the ``chatgpt_denylist`` setting.
DEFAULT_DENYLIST = (
    "cum",
    "semen",
    "cock",
    "pussy",
    "cunt",
    "nigg.r",
)

MAX_MESSAGE_LENGTH = 2000

BAD_WORDS_MESSAGE = "⚠️ ChatGPT response contains bad words that are not allowed."
TOO_LONG_MESSAGE = "⚠️ ChatGPT response is too long. (placeholder message)"


def compile_denylist(terms: Iterable[str]) -> Pattern[str]:
    """Build a single letter-boundary pattern from the denylist terms."""
    alternation = "|".join(f"(?:{term})" for term in terms)
    return re.compile(rf"(?<![a-z])(?:{alternation})(?![a-z])", re.IGNORECASE)


class SafetyFilter:
    """
    Replaces unacceptable responses with fixed notices.

    The denylist check runs before the length check, so an oversized answer
    that also contains a denied term gets the bad-words notice.
    """

    def __init__(
        self,
        denylist: Optional[Iterable[str]] = None,
        max_message_length: int = MAX_MESSAGE_LENGTH
    ):
        terms = tuple(denylist) if denylist else DEFAULT_DENYLIST
        self.pattern = compile_denylist(terms)
        self.max_message_length = max_message_length

    def contains_disallowed(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def validate(self, text: str) -> str:
        """Return the text to post in place of ``text``."""
        if self.contains_disallowed(text):
            logger.warning("🚫 Response blocked by denylist")
            return BAD_WORDS_MESSAGE
        if len(text) > self.max_message_length:
            logger.warning(f"🚫 Response too long ({len(text)} chars)")
            return TOO_LONG_MESSAGE
        return text
