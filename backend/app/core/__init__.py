"""
核心模块包 (Core Module Package)

管理后台的核心基础组件：配置管理、数据库连接、安全认证、依赖注入、异常处理和中间件。

Foundational components of the admin backend: configuration, database
connections, authentication, dependency injection, error handling and middleware.
"""
