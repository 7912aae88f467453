"""
时间工具

数据库统一存储 naive UTC 时间，published_at / expires_at 的比较都基于此。
"""
from datetime import datetime, timezone


def utc_now_naive() -> datetime:
    """当前 UTC 时间（去掉 tzinfo）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
