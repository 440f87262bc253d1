"""Short, human-shareable invitation codes."""

import random
from typing import Callable, Optional, Sequence

from parapluie.core import metrics
from parapluie.core.logging import get_logger
from parapluie.core.ui_strings import get_string
from parapluie.onboarding.errors import CodeGenerationExhausted
from parapluie.storage.interfaces import DataStoreIface

logger = get_logger(__name__)

# Upper-case letters and digits without the look-alikes I, O, 0 and 1
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DEFAULT_CODE_LENGTH = 4
DEFAULT_MAX_ATTEMPTS = 10


def random_code(
    length: int = DEFAULT_CODE_LENGTH,
    choice: Callable[[Sequence[str]], str] = random.choice,
) -> str:
    return "".join(choice(CODE_ALPHABET) for _ in range(length))


async def generate_invitation_code(
    store: DataStoreIface,
    *,
    length: int = DEFAULT_CODE_LENGTH,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    choice: Callable[[Sequence[str]], str] = random.choice,
    language: Optional[str] = None,
) -> str:
    """
    Draw codes until one is not already used by a trusted-contact row.

    The result is only unique at check time: nothing stops another caller
    from inserting the same code before ours lands, so the insert must still
    handle a unique violation.

    Raises:
        CodeGenerationExhausted: every attempt hit an existing code.
    """
    for attempt in range(1, max_attempts + 1):
        code = random_code(length, choice)
        existing = await store.find_trusted_contact_by_code(code)
        if existing is None:
            metrics.invitation_codes_generated.inc()
            logger.debug("Invitation code generated", attempt=attempt)
            return code
        logger.info("Invitation code collision", attempt=attempt)

    metrics.invitation_code_exhausted.inc()
    logger.error("Invitation code generation exhausted", max_attempts=max_attempts)
    raise CodeGenerationExhausted(
        get_string("invitation_failed", language),
        detail=f"no unique code after {max_attempts} attempts",
    )
