"""
Authentication service for the quote sharing system.
User registration with bcrypt password hashes, login, and JWT bearer tokens
that carry the caller identity into the quote engine.
"""

import asyncio
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt
from email_validator import EmailNotValidError, validate_email

from utils import (
    auth_logger, config_manager, log_execution, handle_exception, get_utc_time, to_isoformat,
    ValidationError, UnauthorizedError, ConflictError, ErrorCodes
)
from utils.config_manager import AuthConfig
from database.operations import DatabaseOperations
from database.models import UserDB

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 8
# bcrypt 只使用前72字节
MAX_PASSWORD_BYTES = 72

INVALID_CREDENTIALS_MESSAGE = 'Invalid email or password'


def normalize_email(email: Optional[str]) -> str:
    return (email or '').strip().lower()


def hash_password(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def check_password(password: str, password_hash: str) -> bool:
    encoded = password.encode('utf-8')
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, password_hash.encode('utf-8'))


def public_user(user: UserDB, include_created: bool = False) -> Dict[str, Any]:
    """对外暴露的用户信息（不含密码哈希）"""
    data = {'id': user.id, 'name': user.name, 'email': user.email}
    if include_created:
        data['created_at'] = to_isoformat(user.created_at)
    return data


class AuthService:
    """注册、登录与令牌校验"""

    def __init__(self, db_ops: DatabaseOperations, auth_config: Optional[AuthConfig] = None):
        self.db_ops = db_ops
        self.config = auth_config or config_manager.get_auth_config()

    @handle_exception
    @log_execution("Auth", "register")
    async def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """注册新用户，邮箱已存在时抛出 ConflictError"""
        name = (name or '').strip()
        email = normalize_email(email)
        self._validate_registration(name, email, password or '')

        async with self.db_ops.transaction() as session:
            if await self.db_ops.get_user_by_email(session, email) is not None:
                raise ConflictError(
                    'User with this email already exists',
                    ErrorCodes.AUTH_EMAIL_EXISTS,
                    {'email': email}
                )

            password_hash = await asyncio.to_thread(hash_password, password, self.config.bcrypt_rounds)
            user = await self.db_ops.create_user(session, name, email, password_hash)

        auth_logger.info(f"[Auth] Registered user {user.id}")
        return public_user(user, include_created=True)

    def _validate_registration(self, name: str, email: str, password: str):
        if len(name) < MIN_NAME_LENGTH:
            raise ValidationError(
                f'Name must be at least {MIN_NAME_LENGTH} characters long',
                ErrorCodes.VALIDATION_INVALID_FORMAT,
                {'field': 'name'}
            )
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(
                f'Invalid email address: {e}',
                ErrorCodes.VALIDATION_INVALID_FORMAT,
                {'field': 'email'}
            ) from e
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f'Password must be at least {MIN_PASSWORD_LENGTH} characters long',
                ErrorCodes.VALIDATION_INVALID_FORMAT,
                {'field': 'password'}
            )
        if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                f'Password must be at most {MAX_PASSWORD_BYTES} bytes long',
                ErrorCodes.VALIDATION_INVALID_FORMAT,
                {'field': 'password'}
            )

    @handle_exception
    @log_execution("Auth", "login")
    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """校验邮箱密码，返回令牌与用户信息"""
        email = normalize_email(email)

        async with self.db_ops.transaction() as session:
            user = await self.db_ops.get_user_by_email(session, email)

        if user is None or not password:
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, ErrorCodes.AUTH_INVALID_CREDENTIALS)

        if not await asyncio.to_thread(check_password, password, user.password_hash):
            auth_logger.warning(f"[Auth] Failed login for user {user.id}")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, ErrorCodes.AUTH_INVALID_CREDENTIALS)

        return {'token': self.create_access_token(user), 'user': public_user(user)}

    def create_access_token(self, user: UserDB) -> str:
        now = get_utc_time()
        payload = {
            'sub': user.id,
            'id': user.id,
            'name': user.name,
            'email': user.email,
            'iat': now,
            'exp': now + timedelta(minutes=self.config.token_expire_minutes),
        }
        return jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """解析令牌，返回调用者身份 {id, name, email}"""
        try:
            payload = jwt.decode(token, self.config.jwt_secret, algorithms=[self.config.jwt_algorithm])
        except jwt.ExpiredSignatureError as e:
            raise UnauthorizedError('Token has expired', ErrorCodes.AUTH_INVALID_TOKEN) from e
        except jwt.InvalidTokenError as e:
            raise UnauthorizedError('Invalid token', ErrorCodes.AUTH_INVALID_TOKEN) from e

        if not payload.get('id'):
            raise UnauthorizedError('Invalid token', ErrorCodes.AUTH_INVALID_TOKEN)

        return {'id': payload['id'], 'name': payload.get('name'), 'email': payload.get('email')}
