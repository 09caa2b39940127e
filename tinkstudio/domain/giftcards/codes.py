"""Human-presentable gift card redemption codes"""

import logging
import random
import secrets
from typing import Callable, Optional

from ...errors import CodeGenerationExhausted

logger = logging.getLogger(__name__)

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
CODE_LENGTH = 8
MAX_ATTEMPTS = 10


class GiftCardCodeGenerator:
    """
    Draws base-36 uppercase codes until one is free.

    ``is_taken`` is asked about each draw; the unique constraint on
    ``gift_cards.code`` stays the authoritative check, so callers must run
    this inside the transaction that writes the code.
    """

    def __init__(
        self,
        is_taken: Callable[[str], bool],
        rng: Optional[random.Random] = None,
        max_attempts: int = MAX_ATTEMPTS,
        length: int = CODE_LENGTH,
    ):
        self.is_taken = is_taken
        self.rng = rng or secrets.SystemRandom()
        self.max_attempts = max_attempts
        self.length = length

    def draw(self) -> str:
        return "".join(self.rng.choice(ALPHABET) for _ in range(self.length))

    def generate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            code = self.draw()
            if not self.is_taken(code):
                return code
            logger.debug(f"Gift card code collision on attempt {attempt}")

        logger.error(f"❌ No free gift card code after {self.max_attempts} attempts")
        raise CodeGenerationExhausted(self.max_attempts)
