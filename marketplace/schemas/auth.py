"""
Caller identity as supplied by the identity provider.
"""

from pydantic import BaseModel, Field

from marketplace.db.models.models import UserRole


class Identity(BaseModel):
    """
    The authenticated caller. Trusted as given, never re-validated.
    """

    user_id: int = Field(..., description="User ID from the token subject")
    role: UserRole = Field(UserRole.USER, description="Role claim")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def owns(self, owner_id: int) -> bool:
        return self.user_id == owner_id
