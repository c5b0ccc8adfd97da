import re
import secrets
import string
from typing import Callable, Iterator, Optional

from url_shortener.config import MAX_GENERATION_ATTEMPTS, SHORTCODE_LENGTH
from url_shortener.errors import GenerationExhausted, InvalidShortcode, ShortcodeTaken
from url_shortener.middleware.custom_logger import audit

ALPHABET = string.ascii_letters + string.digits

_shortcode_re = re.compile(r"^[A-Za-z0-9]{1,20}$")


def valid_shortcode(s: str) -> bool:
    return isinstance(s, str) and bool(_shortcode_re.fullmatch(s))


def random_code(length: int = SHORTCODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


class CodeGenerator:
    """Picks a shortcode that is not yet present in the store.

    The uniqueness check only narrows the race window; the store's
    ``create_if_absent`` is what actually reserves a code.
    """

    def __init__(
        self,
        store,
        length: int = SHORTCODE_LENGTH,
        max_attempts: int = MAX_GENERATION_ATTEMPTS,
        random_code: Callable[[int], str] = random_code,
    ):
        self.store = store
        self.length = length
        self.max_attempts = max_attempts
        self._random_code = random_code

    def generate(self, requested: Optional[str] = None) -> str:
        if requested is not None:
            if not valid_shortcode(requested):
                raise InvalidShortcode()
            if self.store.exists(requested):
                audit.event("shortcode_collision", shortcode=requested)
                raise ShortcodeTaken()
            return requested

        return next(self.candidates())

    def candidates(self) -> Iterator[str]:
        """Yield unused random codes, drawing at most ``max_attempts`` in total.

        Draws rejected by the uniqueness check and codes the caller gives
        back after losing the create race share the same budget.
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self._random_code(self.length)
            if self.store.exists(code):
                audit.event("shortcode_collision", shortcode=code, attempt=attempt)
                continue
            yield code
        audit.event("short_autogen_failed", attempts=self.max_attempts)
        raise GenerationExhausted()
