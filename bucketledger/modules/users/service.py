"""Users service layer."""
from typing import List
from flask import current_app
from bucketledger.core.extensions import db
from bucketledger.core.errors import NotFound
from .models import User
from .schemas import UserData


class UserService:
    """User enumeration and lookup for the engine and the batch scheduler."""

    @staticmethod
    def create_user(name: str) -> User:
        cleaned = UserData.validate({'name': name})
        user = User(name=cleaned['name'])
        db.session.add(user)
        db.session.commit()
        current_app.logger.info(f'Created user {user.id}')
        return user

    @staticmethod
    def get_user(user_id: int) -> User:
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFound(f'User {user_id} not found')
        return user

    @staticmethod
    def list_users() -> List[User]:
        return User.query.order_by(User.id).all()

    @staticmethod
    def list_user_ids() -> List[int]:
        return [row[0] for row in db.session.query(User.id).order_by(User.id).all()]
