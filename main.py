"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.routes import admin as admin_routes
from api.routes import gallery as gallery_routes
from api.routes import notes as notes_routes
from api.routes import stats as stats_routes
from api.routes import system as system_routes
from api.routes import uploads as upload_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from application.ports.storage import StoragePort
from application.services.auth_service import AuthService
from application.services.gallery_service import (
    BucketSource,
    DriveFolderSource,
    GalleryProjector,
    LedgerSource,
    PublicUrlStrategy,
    SignedUrlStrategy,
)
from application.services.media_service import MediaService
from application.services.notes_service import NotesService
from application.services.stats_service import StatsService
from application.services.upload_service import UploadAdmissionService
from core.config import Settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from domain.upload import AdmissionPolicy
from infrastructure.external.drive import DriveClient
from infrastructure.external.notes import NotesClient
from infrastructure.external.storage import (
    build_storage_config,
    init_storage_client,
    shutdown_storage_client,
)
from infrastructure.ledger import JsonLinkLedger, JsonStatsStore
from infrastructure.sessions import InMemorySessionStore


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    settings: Settings = app.state.settings

    # 初始化存储服务；失败时不阻止启动，请求时会懒加载重试
    if app.state.storage_port is None:
        config = build_storage_config(settings.storage)
        try:
            await init_storage_client(config)
            logger.info(
                "storage_initialized",
                provider=config.type,
                bucket=config.bucket,
                url_mode=app.state.url_strategy.mode,
                gallery_source=settings.gallery.source,
            )
        except Exception as exc:
            logger.error("storage_init_failed", error=str(exc))

    yield

    await shutdown_storage_client()
    for client in app.state.http_clients:
        await client.close()
    logger.info("application_shutdown")


def _wire_services(app: FastAPI, settings: Settings) -> None:
    """Build every service once; strategies are fixed for the process lifetime."""
    state = app.state
    state.http_clients = []

    if settings.storage.public_base_url:
        state.url_strategy = PublicUrlStrategy(settings.storage.public_base_url)
    else:
        state.url_strategy = SignedUrlStrategy(
            ttl=settings.gallery.signed_url_ttl,
            concurrency=settings.gallery.sign_concurrency,
        )

    link_ledger = JsonLinkLedger(settings.gallery.ledger_path)
    use_ledger = settings.gallery.source == "ledger"

    if settings.gallery.source == "ledger":
        source = LedgerSource(link_ledger, verify=settings.gallery.ledger_verify)
    elif settings.gallery.source == "drive":
        drive = DriveClient(settings.drive)
        state.http_clients.append(drive)
        source = DriveFolderSource(drive, scan_limit=settings.gallery.scan_limit)
    else:
        source = BucketSource(keep=settings.gallery.page_size)
    state.gallery_projector = GalleryProjector(source, state.url_strategy, settings.gallery.page_size)

    state.stats_service = StatsService(
        JsonStatsStore(settings.stats.path),
        enabled=settings.stats.enabled,
    )
    state.upload_service = UploadAdmissionService(
        policy=AdmissionPolicy.create(
            allowed_types=settings.upload.allowed_types,
            unsupported_types=settings.upload.unsupported_types,
            unsupported_hint=settings.upload.unsupported_hint,
            max_size=settings.upload.max_size,
            require_size=settings.upload.require_size,
        ),
        url_strategy=state.url_strategy,
        presign_ttl=settings.upload.presign_ttl,
        max_key_length=settings.upload.max_key_length,
        max_filename_length=settings.upload.max_filename_length,
        stats=state.stats_service,
        ledger=link_ledger if use_ledger else None,
    )
    state.media_service = MediaService(ledger=link_ledger if use_ledger else None)

    state.sessions = InMemorySessionStore(ttl=settings.auth.session_ttl)
    state.auth_service = AuthService(
        state.sessions,
        admin_password=settings.auth.admin_password,
        upload_password=settings.auth.upload_password,
    )

    notes_client = None
    if settings.notes.enabled:
        notes_client = NotesClient(settings.notes)
        state.http_clients.append(notes_client)
    state.notes_service = NotesService(notes_client)


def create_app(settings: Optional[Settings] = None, storage: Optional[StoragePort] = None) -> FastAPI:
    """
    创建应用实例

    Args:
        settings: 配置；默认从环境变量与 .env 读取
        storage: 预先构造的存储端口（测试用）；默认按配置在启动时初始化
    """
    settings = settings or Settings()
    configure_logging(settings.DEBUG)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        description="Self-hosted media upload gallery",
    )
    app.state.settings = settings
    app.state.storage_port = storage
    _wire_services(app, settings)

    # 添加中间件（注意顺序：从下往上执行）
    # 1. 日志中间件（依赖request_id）
    app.add_middleware(LoggingMiddleware)
    # 2. Request ID中间件（在日志之前执行）
    app.add_middleware(RequestIDMiddleware)
    # 3. CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册全局异常处理器
    register_exception_handlers(app)

    # 注册路由
    app.include_router(gallery_routes.router)
    app.include_router(upload_routes.router)
    app.include_router(stats_routes.router)
    app.include_router(admin_routes.router)
    app.include_router(notes_routes.router)
    app.include_router(system_routes.router)

    # 浏览器客户端（index.html 在 / 下）；放在最后，路由优先匹配
    if settings.server.static_dir:
        app.mount("/", StaticFiles(directory=settings.server.static_dir, html=True), name="static")

    return app


if __name__ == "__main__":
    import uvicorn

    app_settings = Settings()
    uvicorn.run(
        create_app(app_settings),
        host=app_settings.server.host,
        port=app_settings.server.port,
        log_level="debug" if app_settings.DEBUG else "info",
        log_config=None,
    )
