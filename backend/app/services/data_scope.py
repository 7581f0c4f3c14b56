"""
数据权限（行级可见性） (Data Scope / Row-level Visibility)

每个请求解析一次调用者的角色集合：
    - 管理员：不加限制（可选地按作者/创建人等显式条件缩小）
    - 非管理员：只看归属于自己的行（作者、创建人或负责人）

写操作（修改/删除）在执行时针对目标行重新校验"本人或管理员"，
列表可见并不代表有写权限，通过猜测 ID 访问的行同样要过这一关。

任务是三级授权：管理员 > 创建人 > 负责人。负责人只能修改 status 和 remark，
允许的字段集合在服务端决定，客户端提交的其他字段一律忽略。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from sqlalchemy import or_, true

from app.core.config import settings
from app.core.exceptions import PermissionDeniedError

ASSIGNEE_EDITABLE_FIELDS = frozenset({"status", "remark"})

TASK_SCOPE_CREATED = "created"
TASK_SCOPE_ASSIGNED = "assigned"


class TaskRelation(str, Enum):
    """调用者与任务的关系，按授权等级从高到低 (Caller relation to a task, strongest first)"""
    ADMIN = "admin"
    CREATOR = "creator"
    ASSIGNEE = "assignee"
    NONE = "none"


@dataclass(frozen=True)
class DataScope:
    user_id: int
    role_codes: FrozenSet[str]
    admin_role_codes: Tuple[str, ...] = field(default_factory=lambda: tuple(settings.admin_role_codes))

    @property
    def is_admin(self) -> bool:
        return bool(self.role_codes.intersection(self.admin_role_codes))

    def ownership_filter(self, owner_column, requested_owner_id: Optional[int] = None):
        """
        单一归属字段的可见性条件 (Visibility clause over one ownership column)

        管理员默认不限制，传入 requested_owner_id 时按其过滤；非管理员固定为本人。
        """
        if self.is_admin:
            return owner_column == requested_owner_id if requested_owner_id is not None else true()
        return owner_column == self.user_id

    def can_modify(self, owner_id: Optional[int]) -> bool:
        return self.is_admin or (owner_id is not None and owner_id == self.user_id)

    def ensure_can_modify(self, owner_id: Optional[int], message: str) -> None:
        if not self.can_modify(owner_id):
            raise PermissionDeniedError(message)

    # ── 任务 (Tasks) ─────────────────────────────────────────────

    def task_filters(
        self,
        creator_column,
        assignee_column,
        scope: Optional[str] = None,
        creator_id: Optional[int] = None,
        assignee_id: Optional[int] = None,
    ) -> List[Any]:
        """
        任务列表可见性条件 (Visibility clauses of the task list)

        管理员：可按 creator_id / assignee_id 过滤；
        非管理员：scope=created 只看自己创建的，scope=assigned 只看指派给自己的，默认两者都看。
        """
        if self.is_admin:
            clauses = []
            if creator_id is not None:
                clauses.append(creator_column == creator_id)
            if assignee_id is not None:
                clauses.append(assignee_column == assignee_id)
            return clauses

        if scope == TASK_SCOPE_CREATED:
            return [creator_column == self.user_id]
        if scope == TASK_SCOPE_ASSIGNED:
            return [assignee_column == self.user_id]
        return [or_(creator_column == self.user_id, assignee_column == self.user_id)]

    def task_relation(self, creator_id: int, assignee_id: Optional[int]) -> TaskRelation:
        if self.is_admin:
            return TaskRelation.ADMIN
        if creator_id == self.user_id:
            return TaskRelation.CREATOR
        if assignee_id is not None and assignee_id == self.user_id:
            return TaskRelation.ASSIGNEE
        return TaskRelation.NONE


def editable_task_fields(relation: TaskRelation, submitted: Mapping[str, Any]) -> Dict[str, Any]:
    """
    按授权等级裁剪可修改字段 (Trim submitted fields to what the relation may change)

    Raises:
        PermissionDeniedError: 与任务无关的调用者
    """
    if relation in (TaskRelation.ADMIN, TaskRelation.CREATOR):
        return dict(submitted)
    if relation == TaskRelation.ASSIGNEE:
        return {key: value for key, value in submitted.items() if key in ASSIGNEE_EDITABLE_FIELDS}
    raise PermissionDeniedError("无权修改此任务 (You may not modify this task)")
