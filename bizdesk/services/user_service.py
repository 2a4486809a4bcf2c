"""
services/user_service.py
------------------------
User management inside one company.

All queries go through UserRepository and are therefore scoped by
company_id to enforce strict data isolation.
"""

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import Conflict, PermissionDenied, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.core.permissions import Role, known_action
from bizdesk.core.security import hash_password, verify_password
from bizdesk.models import User
from bizdesk.repositories import UserRepository
from bizdesk.schemas.user import UserCreate

logger = get_logger(__name__)


class UserService:

    @staticmethod
    async def create_user(db: AsyncSession, company_id: str, data: UserCreate) -> User:
        """Admin-initiated user creation. Admins can assign any role."""
        users = UserRepository(db)
        email = data.email.lower()
        if await users.first(func.lower(User.email) == email, company_id=company_id):
            raise Conflict(f"Email '{email}' is already registered")

        user = users.add(
            User(
                name=data.name,
                email=email,
                phone=data.phone,
                hashed_password=hash_password(data.password),
                role=data.role.value,
                is_company_admin=False,
            ),
            company_id=company_id,
        )
        await db.flush()
        logger.info("Admin created user", new_user_id=user.id, role=user.role, company_id=company_id)
        return user

    @staticmethod
    async def list_users(db: AsyncSession, company_id: str) -> list[User]:
        return await UserRepository(db).list(company_id=company_id, order_by=(User.created_at,))

    @staticmethod
    async def update_role(
        db: AsyncSession, company_id: str, user_id: str, role: Role
    ) -> User:
        """
        Change a user's role. The company admin's role is fixed, and the
        last remaining admin cannot be demoted.
        """
        users = UserRepository(db)
        user = await users.get_or_404(user_id, company_id=company_id)
        if user.is_company_admin:
            raise PermissionDenied("Cannot modify the company admin's role")

        if user.role == Role.admin.value and role != Role.admin:
            admins = await users.count(User.role == Role.admin.value, company_id=company_id)
            if admins <= 1:
                raise ValidationFailed("Cannot demote the last admin of the business")

        previous = user.role
        user.role = role.value
        await db.flush()
        logger.info(
            "User role changed",
            user_id=user.id,
            company_id=company_id,
            old_role=previous,
            new_role=user.role,
        )
        return user

    @staticmethod
    async def update_permissions(
        db: AsyncSession, company_id: str, user_id: str, permissions: list[str]
    ) -> User:
        unknown = sorted(p for p in set(permissions) if not known_action(p))
        if unknown:
            raise ValidationFailed(f"Unknown permissions: {', '.join(unknown)}")
        user = await UserRepository(db).get_or_404(user_id, company_id=company_id)
        user.permissions = sorted(set(permissions))
        await db.flush()
        logger.info("User permissions changed", user_id=user.id, company_id=company_id)
        return user

    @staticmethod
    async def delete_user(
        db: AsyncSession, company_id: str, user_id: str, acting_user_id: str
    ) -> User:
        users = UserRepository(db)
        user = await users.get_or_404(user_id, company_id=company_id)
        if user.id == acting_user_id:
            raise ValidationFailed("You cannot delete your own account")
        if user.is_company_admin:
            raise PermissionDenied("Cannot delete the company admin")
        await users.delete(user.id, company_id=company_id)
        logger.info("User deleted", user_id=user_id, company_id=company_id)
        return user

    @staticmethod
    async def reset_password(
        db: AsyncSession, company_id: str, user_id: str, new_password: str
    ) -> User:
        user = await UserRepository(db).get_or_404(user_id, company_id=company_id)
        user.hashed_password = hash_password(new_password)
        await db.flush()
        logger.info("Password reset by admin", user_id=user.id, company_id=company_id)
        return user

    @staticmethod
    async def change_own_password(
        db: AsyncSession, user: User, current_password: str, new_password: str
    ) -> None:
        if not verify_password(current_password, user.hashed_password):
            raise ValidationFailed("Current password is incorrect")
        if current_password == new_password:
            raise ValidationFailed("New password must be different from the current password")
        user.hashed_password = hash_password(new_password)
        await db.flush()
        logger.info("Password changed", user_id=user.id)
