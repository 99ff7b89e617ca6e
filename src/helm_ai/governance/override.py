"""Human Override Tokens - Time-boxed authority to bypass safety blocks."""

import re
import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

from helm_ai.common.constants import OverrideConstants
from helm_ai.governance.schemas import OverrideToken, utc_now


Clock = Callable[[], datetime]

_ISSUER_STRIP = re.compile(r"[^A-Z0-9]")


def normalize_issuer(actor: str) -> str:
    """Upper-case the actor and drop everything that is not alphanumeric.

    Keeps the token splittable on underscores.
    """
    return _ISSUER_STRIP.sub("", (actor or "").upper())


class OverrideTokenManager:
    """Issues and validates human override tokens.

    Token format: OVERRIDE_<ISSUER>_<issuedAtEpochMillis>_<random>.
    A token is valid for `validity` after issue. Tokens stamped in the
    future are rejected. Tokens are stateless and may be reused within
    their window.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        validity: timedelta = timedelta(minutes=OverrideConstants.VALIDITY_MINUTES),
    ):
        self._clock = clock or utc_now
        self._clock_lock = threading.Lock()
        self.validity = validity

    def now(self) -> datetime:
        with self._clock_lock:
            return self._clock()

    def issue(self, actor: str) -> OverrideToken:
        """Issue a fresh override token for an approver.

        Raises:
            ValueError: If the actor has no alphanumeric characters
        """
        issuer = normalize_issuer(actor)
        if not issuer:
            raise ValueError("Override issuer must contain alphanumeric characters")

        issued_at = self.now()
        # Millisecond precision is all the token can carry
        issued_ms = int(issued_at.timestamp() * 1000)
        suffix = "".join(
            secrets.choice(OverrideConstants.RANDOM_ALPHABET)
            for _ in range(OverrideConstants.RANDOM_SUFFIX_LENGTH)
        )
        token = f"{OverrideConstants.TOKEN_PREFIX}_{issuer}_{issued_ms}_{suffix}"

        return OverrideToken(
            token=token,
            issuer=issuer,
            issued_at=datetime.fromtimestamp(issued_ms / 1000, tz=timezone.utc),
            validity_window=self.validity,
        )

    @staticmethod
    def parse(token: object) -> Optional[Tuple[str, datetime]]:
        """Split a token into (issuer, issued_at). None when malformed."""
        if not isinstance(token, str):
            return None

        parts = token.split("_")
        if len(parts) != 4 or parts[0] != OverrideConstants.TOKEN_PREFIX:
            return None

        _, issuer, issued_ms, suffix = parts
        if not issuer or not issuer.isalnum():
            return None
        if not issued_ms.isdigit() or not suffix:
            return None

        try:
            issued_at = datetime.fromtimestamp(int(issued_ms) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return issuer, issued_at

    def validate(self, token: object, now: Optional[datetime] = None) -> bool:
        """Check that a token is well-formed and inside its window at `now`."""
        parsed = self.parse(token)
        if parsed is None:
            return False

        _, issued_at = parsed
        current = now or self.now()
        age = current - issued_at
        return timedelta(0) <= age <= self.validity
