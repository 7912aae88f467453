"""
数据库连接模块
"""
import asyncio
import logging
from decimal import Decimal
from pathlib import Path
from alembic import command
from alembic.config import Config
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from vestisen.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# 将 postgresql:// 转换为 postgresql+asyncpg://
database_url = settings.database_url.replace(
    "postgresql://", "postgresql+asyncpg://"
)

_engine_options = {"echo": False, "pool_pre_ping": True}
if not database_url.startswith("sqlite"):
    _engine_options.update(pool_size=10, max_overflow=20)

engine = create_async_engine(database_url, **_engine_options)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """SQLAlchemy 基类"""
    pass


async def get_db():
    """获取数据库会话依赖"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def run_migrations() -> None:
    """运行 Alembic 数据库迁移"""
    config_path = Path(__file__).resolve().parents[1] / "alembic.ini"
    alembic_cfg = Config(str(config_path))
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")


async def init_db():
    """初始化数据库表"""
    # 先导入所有模型，确保它们注册到 Base.metadata
    import vestisen.models  # noqa: F401

    # 创建基础表结构（如果不存在）
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # 运行 Alembic 迁移（处理增量变更）
    await asyncio.to_thread(run_migrations)

    async with AsyncSessionLocal() as session:
        await seed_reference_data(session)
        await seed_admin_user(session)
        await session.commit()


# 默认分类: (名称, 描述, 图标)
DEFAULT_CATEGORIES = [
    ("Vêtements femme", "Robes, tops, pantalons et plus", "👗"),
    ("Vêtements homme", "Chemises, pantalons, costumes", "👔"),
    ("Accessoires", "Sacs, bijoux, montres", "👜"),
    ("Promotion", "Articles en promotion", "🏷️"),
    ("Électronique", "Téléphones, ordinateurs, accessoires", "📱"),
    ("Maison", "Décoration, meubles, électroménager", "🏠"),
]

# 默认发布档位: (名称, 积分价格, 天数)
DEFAULT_TARIFS = [
    ("Standard", Decimal("5"), 7),
    ("Premium", Decimal("15"), 14),
    ("Top Pub", Decimal("30"), 30),
]


async def seed_reference_data(session: AsyncSession) -> None:
    """确保积分配置、分类和发布档位存在"""
    from sqlalchemy import select
    from vestisen.models.category import Category
    from vestisen.models.publication_tarif import PublicationTarif
    from vestisen.services.credit_service import get_or_create_config

    await get_or_create_config(session)

    existing = set((await session.execute(select(Category.name))).scalars().all())
    for name, description, icon in DEFAULT_CATEGORIES:
        if name not in existing:
            session.add(Category(name=name, description=description, icon=icon, active=True))

    existing = set((await session.execute(select(PublicationTarif.type_name))).scalars().all())
    for type_name, price, duration_days in DEFAULT_TARIFS:
        if type_name not in existing:
            session.add(
                PublicationTarif(type_name=type_name, price=price, duration_days=duration_days, active=True)
            )
    await session.flush()


async def ensure_admin_user(
    session: AsyncSession,
    email: str,
    password: str,
    first_name: str = "Admin",
    last_name: str = "VestiSen",
    reset_password: bool = False,
) -> bool:
    """
    创建管理员账号，已存在时修复角色与状态

    Returns:
        是否新建了账号
    """
    from sqlalchemy import select
    from vestisen.models.user import User, UserRole
    from vestisen.utils.codes import generate_unique_code
    from vestisen.utils.security import get_password_hash

    email = email.strip().lower()
    result = await session.execute(select(User).where(User.email == email))
    admin = result.scalar_one_or_none()
    if admin:
        # 修复被误改的管理员状态
        admin.role = UserRole.ADMIN.value
        admin.enabled = True
        admin.email_verified = True
        if reset_password:
            admin.password_hash = get_password_hash(password)
        await session.flush()
        return False

    session.add(User(
        code=await generate_unique_code(session, User),
        email=email,
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=UserRole.ADMIN.value,
        enabled=True,
        email_verified=True,
    ))
    await session.flush()
    logger.info("Admin user created: %s", email)
    return True


async def seed_admin_user(session: AsyncSession) -> None:
    """确保配置中的默认管理员账号存在且状态正确"""
    if not settings.admin_email or not settings.admin_password:
        logger.warning("Skipping admin seed; configure ADMIN_EMAIL and ADMIN_PASSWORD.")
        return
    await ensure_admin_user(
        session,
        settings.admin_email,
        settings.admin_password,
        settings.admin_first_name,
        settings.admin_last_name,
    )
