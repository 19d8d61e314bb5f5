"""Repository for user accounts."""

from datetime import datetime
from typing import List, Optional

from ..exceptions import UserNotFoundError
from ..models.user import User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    model_class = User
    not_found_error = UserNotFoundError

    def get_by_email(self, email: str) -> Optional[User]:
        # Exact match: emails are compared as stored.
        return self.db.query(User).filter(User.email == email).first()

    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def get_by_reset_token(self, token: str, now: datetime) -> Optional[User]:
        """User holding *token* whose expiry is still in the future."""
        return (
            self.db.query(User)
            .filter(User.reset_token == token, User.reset_token_expiry > now)
            .first()
        )

    def list(self) -> List[User]:
        return self.db.query(User).order_by(User.email).all()

    def count(self) -> int:
        return self.db.query(User).count()

    def get_many(self, user_ids: set[int]) -> List[User]:
        """Batch lookup used to denormalize audit logs in a single query."""
        if not user_ids:
            return []
        return self.db.query(User).filter(User.id.in_(user_ids)).all()
