"""Authentication - API keys and user profiles.

Handles API key creation, hashing, and validation. Never stores plaintext keys.
The user profile also holds the daily calorie goal the dashboard measures
against.
"""

import hashlib
import logging
import secrets
from datetime import datetime
from typing import Callable, Optional

from ..core.dates import utc_now
from ..core.errors import NotFoundError, ValidationError
from ..core.models import DEFAULT_CALORIE_GOAL, UserProfile, validate_input
from .repository import LedgerRepository


logger = logging.getLogger(__name__)

# API key prefix for identification
API_KEY_PREFIX = "nlg_"


def generate_api_key() -> str:
    """Generate a cryptographically secure API key.

    Returns:
        API key in format: nlg_<random_chars>
    """
    return f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"


def hash_api_key(api_key: str) -> str:
    """Hash an API key to create a user_id.

    Uses SHA256 truncated to 32 chars, which is also the Firestore document ID.

    Args:
        api_key: The plaintext API key

    Returns:
        32-character hash to use as user_id
    """
    return hashlib.sha256(api_key.encode()).hexdigest()[:32]


def validate_api_key_format(api_key: Optional[str]) -> bool:
    """Check if API key has valid format."""
    if not api_key or not api_key.startswith(API_KEY_PREFIX):
        return False
    return len(api_key) >= 40  # prefix + at least some random chars


class AuthClient:
    """Registers users and resolves API keys to user ids."""

    def __init__(
        self,
        repository: LedgerRepository,
        default_calorie_goal: int = DEFAULT_CALORIE_GOAL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._default_calorie_goal = default_calorie_goal
        self._clock = clock

    def register_user(self, email: str, daily_calorie_goal: Optional[int] = None) -> tuple[str, str]:
        """Register a new user and generate their API key.

        Args:
            email: User's email address
            daily_calorie_goal: Calorie target; the configured default when omitted

        Returns:
            Tuple of (api_key, user_id) - api_key is only returned once!

        Raises:
            ValidationError: If the email or goal is invalid
        """
        if not isinstance(email, str) or "@" not in email:
            raise ValidationError("email", "a valid email is required")

        api_key = generate_api_key()
        user_id = hash_api_key(api_key)

        user = validate_input(UserProfile, {
            "id": user_id,
            "email": email,
            "api_key_hash": user_id,
            "daily_calorie_goal": self._default_calorie_goal if daily_calorie_goal is None else daily_calorie_goal,
            "created_at": self._clock(),
        })
        self._repository.save_user(user)

        logger.info("User registered successfully: %s", user_id[:8])
        return api_key, user_id

    def validate_api_key(self, api_key: str) -> Optional[str]:
        """Return the user_id for a valid, registered API key, else None."""
        if not validate_api_key_format(api_key):
            logger.warning("Invalid API key format")
            return None

        user_id = hash_api_key(api_key)
        if self._repository.get_user(user_id) is None:
            logger.warning("API key not found in database")
            return None
        logger.debug("API key validated for user: %s", user_id[:8])
        return user_id

    def set_calorie_goal(self, user_id: str, daily_calorie_goal: int) -> UserProfile:
        """Change a user's daily calorie goal.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If the goal is not in (0, 10000]
        """
        user = self._repository.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        updated = validate_input(UserProfile, {**user.model_dump(), "daily_calorie_goal": daily_calorie_goal})
        logger.info("Daily calorie goal for %s set to %d", user_id[:8], updated.daily_calorie_goal)
        return self._repository.save_user(updated)
