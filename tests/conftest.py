"""
测试公共夹具

- 数据库：临时文件上的 sqlite+aiosqlite，每个测试重建全部表
- Redis：内存版 FakeRedis，通过 dependency_overrides 注入
- 必须在导入 vestisen 之前设置环境变量
"""
import os
import tempfile
from decimal import Decimal

_TMP_DIR = tempfile.mkdtemp(prefix="vestisen-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["JWT_BLACKLIST_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["ADMIN_PASSWORD"] = ""
os.environ["SENTRY_DSN"] = ""

import pytest
from httpx import AsyncClient, ASGITransport

from vestisen import database
from vestisen.database import Base, seed_reference_data
from vestisen.main import app
from vestisen.models.category import Category
from vestisen.models.user import User, UserRole
from vestisen.utils.codes import generate_code
from vestisen.utils.redis_client import get_redis
from vestisen.utils.security import create_access_token, get_password_hash

import vestisen.models  # noqa: F401

DEFAULT_PASSWORD = "secret123"


class FakeRedis:
    """测试用的最小 Redis 实现"""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = str(value)
        return True

    async def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key, seconds):
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def pipeline(self):
        return _FakePipeline(self)


class _FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def incr(self, key):
        self.commands.append(("incr", key))
        return self

    async def expire(self, key, seconds):
        self.commands.append(("expire", key))
        return self

    async def execute(self):
        results = []
        for name, key in self.commands:
            if name == "incr":
                results.append(await self.redis.incr(key))
            else:
                results.append(True)
        self.commands = []
        return results


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_engine():
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield database.engine
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # 连接绑定在当前事件循环上，测试结束后释放
    await database.engine.dispose()


@pytest.fixture
async def seeded(db_engine):
    """积分配置、默认分类与档位"""
    async with database.AsyncSessionLocal() as session:
        await seed_reference_data(session)
        await session.commit()


@pytest.fixture
async def session(db_engine):
    async with database.AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def client(db_engine, fake_redis):
    app.dependency_overrides[get_redis] = lambda: fake_redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def create_user(
    email: str,
    role: UserRole = UserRole.USER,
    balance: Decimal = Decimal("0"),
    enabled: bool = True,
    verified: bool = True,
    password: str = DEFAULT_PASSWORD,
    phone: str = None,
) -> User:
    """直接写库创建用户（已提交）"""
    async with database.AsyncSessionLocal() as session:
        user = User(
            code=generate_code(),
            email=email,
            password_hash=get_password_hash(password),
            first_name="Test",
            last_name=email.split("@")[0],
            phone=phone,
            role=role.value,
            enabled=enabled,
            email_verified=verified,
            credit_balance=balance,
        )
        session.add(user)
        await session.commit()
        return user


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": user.id, "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


async def category_id(name: str = "Vêtements femme") -> str:
    from sqlalchemy import select

    async with database.AsyncSessionLocal() as session:
        result = await session.execute(select(Category.id).where(Category.name == name))
        return result.scalar_one()


def annonce_payload(category: str, **overrides) -> dict:
    payload = {
        "title": "Robe en wax",
        "description": "Robe neuve taille M",
        "price": "15000",
        "category_id": category,
        "publication_type": "Standard",
        "condition": "NEUF",
        "size": "M",
        "brand": "Dakar Style",
    }
    payload.update(overrides)
    return payload
