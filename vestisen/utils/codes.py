"""
业务编码生成
"""
import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 18


def generate_code(length: int = CODE_LENGTH) -> str:
    """生成随机大写字母数字编码 (默认18位)"""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


async def generate_unique_code(db: AsyncSession, model, attempts: int = 10) -> str:
    """生成在 model.code 列上唯一的编码"""
    for _ in range(attempts):
        code = generate_code()
        exists = await db.execute(select(model.id).where(model.code == code))
        if exists.scalar_one_or_none() is None:
            return code
    raise RuntimeError(f"无法为 {model.__tablename__} 生成唯一编码")
