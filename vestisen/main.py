"""
FastAPI 主入口
"""
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Response, HTTPException, Request, status, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from jose import JWTError
from starlette.background import BackgroundTask
from starlette.exceptions import HTTPException as StarletteHTTPException
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from vestisen.config import get_settings
from vestisen.database import init_db
from vestisen.routers import (
    admin,
    annonces,
    auth,
    cart,
    catalog,
    conversations,
    credit,
    payment,
    reviews,
)
from vestisen.services import action_log_service
from vestisen.services.errors import ServiceError
from vestisen.utils.request_context import (
    request_id_ctx_var,
    RequestIdFilter,
    JsonFormatter,
    get_client_ip,
)
from vestisen.utils.metrics import REQUEST_COUNT, REQUEST_LATENCY, IN_PROGRESS, get_route_name
from vestisen.utils.security import decode_token_payload, verify_metrics_basic_auth

# Initialize settings
settings = get_settings()
logger = logging.getLogger(__name__)

API_V1_PREFIX = "/api/v1"
LOGGED_SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时初始化数据库（建表、迁移、种子数据、管理员账号）
    settings.validate_secrets()
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    await init_db()
    yield


app = FastAPI(
    title="VestiSen API",
    description="二手服饰分类信息平台后端服务",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error",
            "message": exc.message,
            "error": exc.error_code,
            "code": exc.status_code,
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error",
            "message": exc.detail,
            "code": exc.status_code
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "message": "Validation Error",
            "details": jsonable_errors(exc),
            "code": 422
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx 中可能带有异常实例，无法直接序列化
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "message": "Internal Server Error",
            "code": 500
        },
    )


def _actor_from_request(request: Request) -> dict:
    """从 Bearer token 中解析操作人（不查库）"""
    auth_header = request.headers.get("authorization", "")
    if not auth_header.startswith("Bearer ") or len(auth_header) <= 7:
        return {}
    try:
        payload = decode_token_payload(auth_header[7:])
    except JWTError:
        return {}
    return {
        "user_id": payload.get("sub"),
        "username": payload.get("email"),
        "user_role": payload.get("role"),
    }


@app.middleware("http")
async def action_log_middleware(request: Request, call_next):
    """记录 API 下所有写操作，日志在响应发送后写入"""
    path = request.url.path
    if request.method in LOGGED_SAFE_METHODS or not path.startswith("/api"):
        return await call_next(request)

    response = await call_next(request)

    resource_type, resource_id = action_log_service.derive_resource(path)
    success = response.status_code < 400
    response.background = BackgroundTask(
        action_log_service.record_request,
        http_method=request.method,
        request_uri=path[:500],
        query_string=(request.url.query or "")[:1000] or None,
        resource_type=resource_type,
        resource_id=resource_id,
        action_label=action_log_service.action_label(request.method, path),
        response_status=response.status_code,
        success=success,
        client_ip=get_client_ip(request),
        user_agent=(request.headers.get("user-agent") or "")[:500] or None,
        error_message=None if success else f"HTTP {response.status_code}",
        **_actor_from_request(request),
    )
    return response


@app.middleware("http")
async def request_context_middleware(request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id
    token = request_id_ctx_var.set(request_id)
    response = None
    start = time.perf_counter()
    if settings.metrics_enabled:
        IN_PROGRESS.inc()

    try:
        response = await call_next(request)
        return response
    finally:
        duration = time.perf_counter() - start
        path = get_route_name(request.scope)
        status_code = response.status_code if response else 500
        if settings.metrics_enabled:
            REQUEST_COUNT.labels(request.method, path, str(status_code)).inc()
            REQUEST_LATENCY.labels(request.method, path).observe(duration)
            IN_PROGRESS.dec()
        request_id_ctx_var.reset(token)
        if response is not None:
            response.headers["X-Request-ID"] = request_id


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-Request-ID",
    ],
    expose_headers=["X-Request-ID", "X-Total-Count"],
)

# ============================================================================
# API 版本控制
# 所有 API 路由都在 /api/v1/ 前缀下，旧的 /api/ 路径保留兼容
# ============================================================================

_ROUTES = [
    (auth.router, "/auth", "认证"),
    (annonces.router, "/annonces", "发布"),
    (catalog.categories_router, "/categories", "分类"),
    (catalog.tarifs_router, "/tarifs", "档位"),
    (credit.router, "/credits", "积分"),
    (payment.router, "/payments", "发布支付"),
    (cart.router, "/cart", "购物车"),
    (reviews.router, "/reviews", "评价"),
    (conversations.router, "/conversations", "会话"),
    (admin.router, "/admin", "管理后台"),
]

for _router, _path, _tag in _ROUTES:
    app.include_router(_router, prefix=f"{API_V1_PREFIX}{_path}", tags=[f"V1-{_tag}"])

for _router, _path, _tag in _ROUTES:
    app.include_router(_router, prefix=f"/api{_path}", tags=[f"{_tag}-Deprecated"], include_in_schema=False)

# 上传图片静态访问
app.mount(
    settings.upload_url_prefix,
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name="uploads",
)


@app.get("/")
async def root():
    """根路由"""
    return {"message": "VestiSen API is running", "status": "ok", "docs_url": "/docs"}


@app.get("/api/health")
@app.get("/api/v1/health")
async def health_check():
    """
    健康检查端点

    Returns:
        服务状态信息
    """
    return {
        "status": "ok",
        "service": "vestisen-backend",
        "version": "1.0.0",
        "api_version": "v1"
    }


@app.get("/metrics", dependencies=[Depends(verify_metrics_basic_auth)])
async def metrics():
    """Prometheus 指标端点（支持 Basic Auth 认证）"""
    if not settings.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.setLevel(settings.log_level)
        logger.propagate = False


def init_sentry() -> None:
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            integrations=[FastApiIntegration()],
            traces_sample_rate=settings.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry_profiles_sample_rate,
        )


configure_logging()
init_sentry()
