"""
用户管理服务 (User Management Service)

用户的创建、注册、资料修改、启用/禁用、软删除、密码重置以及用户↔角色绑定替换。
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.security import hash_password, verify_password
from app.models.role import Role
from app.models.user import USER_DISABLED, USER_ENABLED, User
from app.repositories.identity_repository import IdentityRepository
from app.services.role_service import normalize_ids

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("nickname", "email", "phone", "avatar", "status")
MIN_PASSWORD_LENGTH = 6


class UserService:
    """用户服务 (User service)"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = IdentityRepository(session)

    async def list_users(
        self,
        keyword: Optional[str] = None,
        status: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[User], int, Dict[int, List[Role]]]:
        filters = [User.live()]
        if keyword:
            like = f"%{keyword}%"
            filters.append(or_(
                User.username.like(like),
                User.nickname.like(like),
                User.email.like(like),
                User.phone.like(like),
            ))
        if status is not None:
            filters.append(User.status == status)

        total = (await self.session.execute(select(func.count(User.id)).where(*filters))).scalar()
        stmt = (
            select(User).where(*filters).order_by(User.id)
            .offset((page - 1) * page_size).limit(page_size)
        )
        users = list((await self.session.execute(stmt)).scalars().all())
        roles = await self.repo.roles_for_users([user.id for user in users])
        return users, total, roles

    async def get_user(self, user_id: int) -> User:
        user = await self.repo.get_user(user_id)
        if user is None:
            raise NotFoundError("用户不存在 (User not found)")
        return user

    async def roles_of(self, user_id: int) -> List[Role]:
        return (await self.repo.roles_for_users([user_id]))[user_id]

    async def _ensure_unique(self, username: Optional[str], email: Optional[str], exclude_user_id: Optional[int] = None) -> None:
        if username and await self.repo.username_taken(username):
            raise ConflictError(f"用户名已存在：{username} (Username already exists)")
        if email and await self.repo.email_taken(email, exclude_user_id):
            raise ConflictError(f"邮箱已被使用：{email} (Email already in use)")

    async def _valid_role_ids(self, raw_role_ids: Iterable[Any]) -> List[int]:
        role_ids = normalize_ids(raw_role_ids)
        found = {role.id for role in await self.repo.roles_by_ids(role_ids)}
        invalid = [role_id for role_id in role_ids if role_id not in found]
        if invalid:
            raise ValidationError(
                f"角色不存在：{', '.join(str(i) for i in invalid)} (every role id must reference a live role)",
                detail="invalid_role_ids",
            )
        return role_ids

    async def _default_role_ids(self) -> List[int]:
        role = await self.repo.get_role_by_code(settings.default_role_code)
        if role is None:
            logger.warning("Default role %s is missing, new user gets no role", settings.default_role_code)
            return []
        return [role.id]

    async def create_user(self, data: Mapping[str, Any], role_ids: Optional[Iterable[Any]] = None) -> User:
        """
        创建用户 (Create a user)

        未指定角色时绑定默认角色（settings.default_role_code）。
        """
        username = data["username"]
        email = data.get("email") or None
        await self._ensure_unique(username, email)
        resolved_role_ids = await self._valid_role_ids(role_ids) if role_ids else await self._default_role_ids()

        user = User(
            username=username,
            hashed_password=hash_password(data["password"]),
            nickname=data.get("nickname") or username,
            email=email,
            phone=data.get("phone"),
            avatar=data.get("avatar"),
            status=data.get("status", USER_ENABLED),
        )
        self.session.add(user)
        await self.session.flush()
        await self.repo.replace_user_roles(user.id, resolved_role_ids)
        await self.session.commit()
        await self.session.refresh(user)
        logger.info("User %s (%s) created with roles %s", user.id, username, resolved_role_ids)
        return user

    async def update_user(self, user_id: int, data: Mapping[str, Any], role_ids: Optional[Iterable[Any]] = None) -> User:
        user = await self.get_user(user_id)
        updates = {key: value for key, value in data.items() if key in PROFILE_FIELDS}
        if "status" in updates:
            self._check_status(updates["status"])
        if updates.get("email"):
            await self._ensure_unique(None, updates["email"], exclude_user_id=user_id)

        resolved_role_ids = await self._valid_role_ids(role_ids) if role_ids is not None else None
        for field, value in updates.items():
            setattr(user, field, value)
        if resolved_role_ids is not None:
            await self.repo.replace_user_roles(user_id, resolved_role_ids)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    @staticmethod
    def _check_status(status: int) -> None:
        if status not in (USER_ENABLED, USER_DISABLED):
            raise ValidationError("状态值只能是 0 或 1 (status must be 0 or 1)", detail="invalid_status")

    async def update_status(self, user_id: int, status: int, operator_id: int) -> User:
        self._check_status(status)
        user = await self.get_user(user_id)
        if user_id == operator_id and status == USER_DISABLED:
            raise ConflictError("不能禁用自己 (You cannot disable your own account)")
        user.status = status
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def delete_user(self, user_id: int, operator_id: int) -> None:
        if user_id == operator_id:
            raise ConflictError("不能删除自己 (You cannot delete your own account)")
        user = await self.get_user(user_id)
        if user.username in settings.protected_usernames:
            raise ConflictError(f"系统内置账号不能删除：{user.username} (Built-in accounts cannot be deleted)")

        user.soft_delete()
        await self.repo.delete_user_bindings(user_id)
        await self.session.commit()
        logger.info("User %s (%s) deleted by %s", user_id, user.username, operator_id)

    async def reset_password(self, user_id: int, new_password: str) -> None:
        if len(new_password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError("密码长度不能少于 6 位 (password must be at least 6 characters)", detail="password_too_short")
        user = await self.get_user(user_id)
        user.hashed_password = hash_password(new_password)
        await self.session.commit()

    async def assign_roles(self, user_id: int, raw_role_ids: Iterable[Any]) -> List[int]:
        await self.get_user(user_id)
        role_ids = await self._valid_role_ids(raw_role_ids)
        try:
            await self.repo.replace_user_roles(user_id, role_ids)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.exception("Replacing roles of user %s failed, rolled back", user_id)
            raise
        return role_ids

    async def change_password(self, user: User, old_password: str, new_password: str, confirm_password: str) -> None:
        if new_password != confirm_password:
            raise ValidationError("两次输入的新密码不一致 (new password and confirmation differ)", detail="password_mismatch")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("密码长度不能少于 6 位 (password must be at least 6 characters)", detail="password_too_short")
        if not verify_password(old_password, user.hashed_password):
            raise ValidationError("原密码错误 (old password is incorrect)", detail="wrong_old_password")
        user.hashed_password = hash_password(new_password)
        await self.session.commit()
