"""
API 速率限制器

- 已认证用户：使用用户 ID 进行限制
- 未认证用户：使用 IP 进行限制
"""
from fastapi import Depends, HTTPException, status, Request, Header
from jose import JWTError
import redis.asyncio as redis

from vestisen.utils.redis_client import get_redis
from vestisen.utils.request_context import get_client_ip


class RateLimiter:
    def __init__(self, times: int = 5, seconds: int = 60, per_user: bool = True):
        """
        Args:
            times: 时间窗口内允许的请求次数
            seconds: 时间窗口（秒）
            per_user: 是否按用户限制（True）或按 IP 限制（False）
        """
        self.times = times
        self.seconds = seconds
        self.per_user = per_user

    async def __call__(
        self,
        request: Request,
        authorization: str = Header(None),
        redis_client: redis.Redis = Depends(get_redis),
    ):
        if not redis_client:
            return

        client_id = self._get_client_id(request, authorization)
        key = f"rate_limit:{client_id}:{request.url.path}"

        current = await redis_client.get(key)

        if current and int(current) >= self.times:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Trop de requêtes, réessayez plus tard",
            )

        async with redis_client.pipeline() as pipe:
            await pipe.incr(key)
            if not current:
                await pipe.expire(key, self.seconds)
            await pipe.execute()

    def _get_client_id(self, request: Request, authorization: str) -> str:
        if self.per_user and authorization:
            from vestisen.utils.security import decode_token_payload
            try:
                payload = decode_token_payload(authorization.replace("Bearer ", ""))
                user_id = payload.get("sub")
                if user_id:
                    return f"user:{user_id}"
            except JWTError:
                pass  # Token 无效，回退到 IP
        return f"ip:{get_client_ip(request)}"
