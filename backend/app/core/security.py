"""
安全工具模块 (Security Tools Module)

密码哈希（bcrypt）和 JWT 令牌签发/解析。访问令牌携带用户名，
操作日志中间件无需查库即可记录操作人。

Password hashing (bcrypt) plus JWT issuing and decoding. Access tokens carry the
username so the operation log middleware can record the actor without a query.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

# 密码哈希上下文，使用 bcrypt 算法 (Password Hash Context using bcrypt algorithm)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(password: str) -> str:
    """对明文密码进行 bcrypt 哈希，结果自带盐值 (Hash plain text password with a salted bcrypt hash)"""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """
    验证明文密码是否与哈希值匹配 (Verify if plain text password matches hash)

    Args:
        plain (str): 用户输入的明文密码 (User's plain text password)
        hashed (str): 数据库中存储的哈希密码 (Stored hashed password from database)

    Returns:
        bool: 密码匹配返回 True，否则返回 False
    """
    return pwd_context.verify(plain, hashed)


def _encode(claims: dict, expires_delta: timedelta) -> str:
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + expires_delta
    payload["jti"] = uuid.uuid4().hex  # 令牌唯一标识，注销时写入黑名单 (Token id used by the logout blacklist)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(subject: str, username: Optional[str] = None) -> str:
    """
    生成访问令牌（短期有效） (Generate access token with short expiry)

    Args:
        subject (str): 用户 ID (User id)
        username (str | None): 写入令牌的用户名，供操作日志使用 (Username claim for operation logs)

    Returns:
        str: JWT 访问令牌字符串 (JWT access token string)
    """
    claims = {"sub": subject, "type": ACCESS_TOKEN_TYPE}
    if username:
        claims["username"] = username
    return _encode(claims, timedelta(minutes=settings.jwt_access_token_expire_minutes))


def create_refresh_token(subject: str) -> str:
    """生成刷新令牌（长期有效），只用于换取新的令牌对 (Generate long-lived refresh token)"""
    return _encode(
        {"sub": subject, "type": REFRESH_TOKEN_TYPE},
        timedelta(days=settings.jwt_refresh_token_expire_days),
    )


def decode_token(token: str) -> dict | None:
    """
    解析 JWT 令牌，失败返回 None (Decode JWT token, return None on failure)

    签名无效、格式错误或已过期都返回 None，由调用方决定如何拒绝。
    """
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


BLACKLIST_KEY_PREFIX = "token_blacklist:"


async def revoke_token(redis_client, payload: dict) -> None:
    """
    注销令牌：把 jti 写入 Redis 黑名单，保留到令牌自然过期 (Blacklist the jti until the token expires)
    """
    jti = payload.get("jti")
    if not jti:
        return
    remaining = int(payload.get("exp", 0) - datetime.now(timezone.utc).timestamp())
    if remaining > 0:
        await redis_client.setex(f"{BLACKLIST_KEY_PREFIX}{jti}", remaining, "1")


async def is_token_revoked(redis_client, payload: dict) -> bool:
    jti = payload.get("jti")
    if not jti:
        return False
    return bool(await redis_client.exists(f"{BLACKLIST_KEY_PREFIX}{jti}"))
