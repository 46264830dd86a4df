"""
➡️ But : Encapsuler toutes les opérations de base de données sur les comptes.

Ne contient aucune logique métier, juste de la persistance.
"""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from onair.db.repositories.base import BaseRepository
from onair.db.models.users import User


class UserRepository(BaseRepository[User]):
    model = User

    def get_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(
            select(self.model).where(self.model.email == email.strip().lower())
        ).first()

    def get_by_verification_token(self, token: str) -> Optional[User]:
        return self.session.exec(
            select(self.model).where(self.model.verification_token == token)
        ).first()

    def get_by_reset_token(self, token: str) -> Optional[User]:
        return self.session.exec(
            select(self.model).where(self.model.reset_password_token == token)
        ).first()

    def mark_all_verified(self) -> int:
        users = self.session.exec(
            select(self.model).where(self.model.email_verified == False)  # noqa: E712
        ).all()
        for user in users:
            user.email_verified = True
            user.verification_token = None
            user.verification_token_expires = None
            self.session.add(user)
        self.session.commit()
        return len(users)
