"""
Unit tests for the authentication service
"""

from datetime import timedelta

import jwt
import pytest

from auth_service import AuthService, check_password, hash_password
from utils.date_utils import get_utc_time
from utils.exceptions import ConflictError, UnauthorizedError, ValidationError

PASSWORD = "s3cret-password"


@pytest.mark.unit
class TestPasswordHashing:

    def test_hash_and_check(self):
        hashed = hash_password(PASSWORD, 4)
        assert hashed != PASSWORD
        assert check_password(PASSWORD, hashed)
        assert not check_password("wrong-password", hashed)

    def test_overlong_password_never_matches(self):
        hashed = hash_password(PASSWORD, 4)
        assert not check_password("x" * 100, hashed)


@pytest.mark.unit
class TestAuthService:
    """Test cases for AuthService"""

    async def test_register_returns_public_user(self, auth_service):
        user = await auth_service.register("Grace Hopper", "Grace@Example.com", PASSWORD)

        assert user['name'] == "Grace Hopper"
        assert user['email'] == "grace@example.com"
        assert user['id']
        assert user['created_at']
        assert 'password_hash' not in user

    async def test_register_stores_hash(self, auth_service, db_ops):
        user = await auth_service.register("Grace Hopper", "grace@example.com", PASSWORD)

        async with db_ops.transaction() as session:
            stored = await db_ops.get_user_by_id(session, user['id'])
        assert stored.password_hash != PASSWORD
        assert check_password(PASSWORD, stored.password_hash)

    async def test_register_duplicate_email(self, auth_service):
        await auth_service.register("Grace Hopper", "grace@example.com", PASSWORD)

        with pytest.raises(ConflictError) as exc_info:
            await auth_service.register("Another Grace", "GRACE@example.com", PASSWORD)
        assert exc_info.value.message == 'User with this email already exists'

    @pytest.mark.parametrize("name,email,password", [
        ("G", "grace@example.com", PASSWORD),
        ("Grace", "not-an-email", PASSWORD),
        ("Grace", "not an email@x.y", PASSWORD),
        ("Grace", "grace@@example.com", PASSWORD),
        ("Grace", "grace@example.com", "short"),
        ("Grace", "grace@example.com", "é" * 40),
    ])
    async def test_register_validation(self, auth_service, name, email, password):
        with pytest.raises(ValidationError):
            await auth_service.register(name, email, password)

    async def test_login_success(self, auth_service, auth_config):
        registered = await auth_service.register("Grace Hopper", "grace@example.com", PASSWORD)

        result = await auth_service.login("GRACE@example.com", PASSWORD)

        assert result['user'] == {'id': registered['id'], 'name': "Grace Hopper", 'email': "grace@example.com"}
        payload = jwt.decode(result['token'], auth_config.jwt_secret, algorithms=[auth_config.jwt_algorithm])
        assert payload['id'] == registered['id']
        assert payload['email'] == "grace@example.com"
        assert payload['exp'] > payload['iat']

    @pytest.mark.parametrize("email,password", [
        ("grace@example.com", "wrong-password"),
        ("nobody@example.com", PASSWORD),
        ("grace@example.com", ""),
    ])
    async def test_login_invalid_credentials(self, auth_service, email, password):
        await auth_service.register("Grace Hopper", "grace@example.com", PASSWORD)

        with pytest.raises(UnauthorizedError) as exc_info:
            await auth_service.login(email, password)
        assert exc_info.value.message == 'Invalid email or password'

    async def test_verify_token_roundtrip(self, auth_service):
        await auth_service.register("Grace Hopper", "grace@example.com", PASSWORD)
        result = await auth_service.login("grace@example.com", PASSWORD)

        identity = auth_service.verify_token(result['token'])
        assert identity == result['user']

    def test_verify_token_rejects_garbage(self, auth_service):
        with pytest.raises(UnauthorizedError):
            auth_service.verify_token("not.a.token")

    def test_verify_token_rejects_wrong_secret(self, auth_service, auth_config):
        token = jwt.encode({'id': 'abc'}, 'other-secret', algorithm=auth_config.jwt_algorithm)
        with pytest.raises(UnauthorizedError):
            auth_service.verify_token(token)

    def test_verify_token_rejects_expired(self, auth_service, auth_config):
        past = get_utc_time() - timedelta(hours=2)
        token = jwt.encode(
            {'id': 'abc', 'iat': past, 'exp': past + timedelta(minutes=5)},
            auth_config.jwt_secret,
            algorithm=auth_config.jwt_algorithm
        )
        with pytest.raises(UnauthorizedError) as exc_info:
            auth_service.verify_token(token)
        assert exc_info.value.message == 'Token has expired'

    def test_verify_token_requires_identity(self, auth_service, auth_config):
        token = jwt.encode({'name': 'ghost'}, auth_config.jwt_secret, algorithm=auth_config.jwt_algorithm)
        with pytest.raises(UnauthorizedError):
            auth_service.verify_token(token)

    def test_default_config_comes_from_config_manager(self, db_ops):
        service = AuthService(db_ops)
        assert service.config.jwt_algorithm == 'HS256'
