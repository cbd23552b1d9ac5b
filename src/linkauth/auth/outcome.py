"""Authentication outcomes — one tagged result per attempt.

Learn: Instead of callbacks like done(err, user, info), every attempt
returns exactly one of:

    Success(user, session_ref)   — signed in (or signed up)
    Rejected(reason)             — expected, user-correctable
    Failed(cause)                — something broke on our side

Rejections carry a RejectionReason code. The user-facing text is looked
up from the code, so nothing downstream ever has to match on strings.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from linkauth.db.models import User


class RejectionReason(str, enum.Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    EXTERNAL_ACCOUNT = "external_account"
    DUPLICATE_EMAIL = "duplicate_email"


# "Incorrect email or password." is deliberately shared by unknown-email
# and wrong-password so the response never reveals whether an account exists.
REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.INVALID_CREDENTIALS: "Incorrect email or password.",
    RejectionReason.EXTERNAL_ACCOUNT: "Please log in with {provider}.",
    RejectionReason.DUPLICATE_EMAIL: "User with this email already exists.",
}


@dataclass(frozen=True)
class PublicUser:
    """The only user shape allowed out of the core.

    Learn: There is no password_hash or external_id field here at all,
    so a hash cannot leak by accident — it's excluded by construction.
    """

    id: uuid.UUID
    full_name: str
    email: str

    @classmethod
    def from_record(cls, user: User) -> "PublicUser":
        return cls(id=user.id, full_name=user.full_name, email=user.email)


@dataclass(frozen=True)
class Success:
    user: PublicUser
    session_ref: Optional[str] = None


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    provider: str = "Google"

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self.reason].format(provider=self.provider)


@dataclass(frozen=True)
class Failed:
    cause: Exception


AuthOutcome = Union[Success, Rejected, Failed]
