"""
Redis 客户端
"""
import redis.asyncio as redis
from vestisen.config import get_settings

settings = get_settings()

# 连接池与超时配置，防止高并发下连接耗尽
redis_client = redis.from_url(
    settings.redis_url,
    encoding="utf-8",
    decode_responses=True,
    max_connections=50,
    socket_timeout=5,
    socket_connect_timeout=5,
    retry_on_timeout=True,
    health_check_interval=30,
)


async def get_redis():
    """获取 Redis 客户端"""
    return redis_client
