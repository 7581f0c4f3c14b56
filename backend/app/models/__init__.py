"""
数据模型包 (Data Models Package)

集中导出所有 SQLAlchemy ORM 模型，导入本包即可保证所有表注册到 Base.metadata。

Centrally exports all SQLAlchemy ORM models; importing this package registers
every table on Base.metadata.
"""
from app.models.user import User
from app.models.role import Role, UserRole, RoleMenu
from app.models.menu import Menu
from app.models.article import Article
from app.models.task import Task
from app.models.notification import Notification
from app.models.operation_log import OperationLog

__all__ = [
    "User", "Role", "UserRole", "RoleMenu", "Menu",
    "Article", "Task", "Notification", "OperationLog",
]
