"""
RBAC 管理后台路由模块包 (RBAC Admin Router Module Package)

本包包含后端 API 的所有路由模块，按功能域进行组织。

路由模块组织结构 (Router Module Organization):

=== 认证与身份 (Authentication and Identity) ===
- auth.py: 登录、注册、登出、刷新令牌、当前用户信息、修改密码
- users.py: 用户管理（CRUD、状态、重置密码、角色分配）

=== 权限配置 (Permission Configuration) ===
- roles.py: 角色管理（CRUD、角色↔菜单绑定）
- menus.py: 菜单管理（当前用户菜单树、完整菜单树、菜单 CRUD）

=== 业务资源 (Business Resources) ===
- articles.py: 文章管理（作者本人或管理员可写）
- tasks.py: 任务管理（管理员 > 创建人 > 负责人三级授权）
- notifications.py: 站内通知（接收人本人可见、管理员群发）

=== 审计 (Auditing) ===
- operation_logs.py: 操作日志查询与清理

路由注册:
所有路由模块在 main.py 中通过 app.include_router() 统一注册，统一使用 /api/v1/ 前缀。
"""
