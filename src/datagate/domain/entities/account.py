"""Account entity for blog users.

Accounts are the subjects of every permission check and, for the "Users"
resource type, also the objects being protected.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from datagate.domain.entities.permission import UserRole


@dataclass
class Account:
    """A blog user account.

    Attributes:
        id: Unique identifier (UUID string).
        username: Login name.
        email: Email address; masked for low-privilege viewers.
        role: Role, or None once hidden by masking.
        display_name: Public display name.
        is_active: Inactive accounts are denied every check.
        created_at: Timestamp when the account was created.
        last_login_at: Timestamp of last login; hidden by masking.
    """

    id: str
    username: str
    email: str | None = None
    role: UserRole | None = UserRole.USER
    display_name: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: datetime | None = None

    @property
    def created_by(self) -> str:
        # Accounts own themselves
        return self.id
