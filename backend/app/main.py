# FastAPI 진입점
# - Beanie ODM 초기화 (MongoDB)
# - 라우터 라우팅
# - CORS 설정
# - 서비스 예외 → HTTP 응답 변환

import logging
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from .core.config import settings
from .core.exceptions import InvalidFieldsError, UserServiceError
from .core.logging_config import setup_logging
from .core.retry import ping_with_retry
from .models.user import User
from .repositories.user_repository import UserRepository
from .api.v1.users import router as users_router

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# FastAPI 애플리케이션 인스턴스 생성
app = FastAPI(
    title="User Service API",
    description="사용자 CRUD / 소프트 삭제 / 페이지네이션 / 전문 검색 / 통계",
    version="1.0.0"
)

# CORS 허용 도메인 세팅
origins = [o.strip() for o in settings.CORS_ALLOW_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(UserServiceError)
async def user_service_error_handler(request: Request, exc: UserServiceError):
    content = {"detail": exc.message}
    if isinstance(exc, InvalidFieldsError):
        content["invalidFields"] = exc.invalid_fields
    return JSONResponse(status_code=exc.status_code, content=content)


# Beanie 초기화 (앱 시작 시 1회)
# 주니어 개발자님께: init_beanie 는 User.Settings.indexes 에 선언된 인덱스
# (emailLower unique, age_createdAt)를 생성합니다. 텍스트 인덱스는
# scripts/ensure_indexes.py 로 따로 만들어야 검색 API가 동작합니다.
@app.on_event("startup")
async def app_init():
    try:
        client = AsyncIOMotorClient(settings.MONGODB_URI, serverSelectionTimeoutMS=5000)
        await ping_with_retry(client, max_attempts=settings.DB_CONNECT_ATTEMPTS)

        db = client.get_default_database()
        await init_beanie(database=db, document_models=[User])
        logger.info(f"MongoDB 연결 성공: {settings.MONGODB_URI}")

        repo = UserRepository(User.get_motor_collection())
        indexes = await repo.collection.index_information()
        for name, info in indexes.items():
            logger.info(f"- index {name}: {info.get('key')}")
        if not await repo.has_text_index():
            logger.warning("텍스트 인덱스가 없습니다. 검색 API를 쓰려면 scripts/ensure_indexes.py 를 실행하세요.")
    except Exception as e:
        # MongoDB 연결 실패 시에도 서버는 시작됩니다 (헬스체크는 동작)
        logger.warning(f"MongoDB 연결 실패: {e}")
        logger.info(f"MongoDB URI를 확인하세요: {settings.MONGODB_URI}")

# 간단한 헬스체크
@app.get("/")
async def root():
    return {"ok": True, "app": settings.APP_NAME, "time": datetime.now(tz=timezone.utc).isoformat()}

@app.get("/health")
async def health_check():
    return {"status": "ok", "app": settings.APP_NAME, "version": "1.0.0"}

# API v1 라우터 등록
app.include_router(users_router, prefix="/api/v1")
