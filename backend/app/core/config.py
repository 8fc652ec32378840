# 설정 모듈
# - .env 값들을 한 곳에서 관리
# - 기본값을 제공하여 로컬 실행 편의성 확보

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from pydantic import Field

# 프로젝트 루트 디렉토리 경로 찾기
# 주니어 개발자님께: 이 파일은 backend/app/core/config.py에 있으므로,
# 3단계 상위로 올라가면 프로젝트 루트가 됩니다.
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
ENV_FILE_PATH = PROJECT_ROOT / ".env"

class Settings(BaseSettings):
    APP_NAME: str = "user-service"
    ENV: str = "dev"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    MONGODB_URI: str = "mongodb://localhost:27017/user_service"
    USERS_COLLECTION: str = "users"
    # 시작 시 MongoDB ping 재시도 횟수
    DB_CONNECT_ATTEMPTS: int = 3

    CORS_ALLOW_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    LOG_LEVEL: str = "INFO"

    # 목록/페이지네이션 기본값
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1)
    DEFAULT_CURSOR_LIMIT: int = Field(default=20, ge=1)
    MAX_CURSOR_LIMIT: int = Field(default=100, ge=1)
    # 전문 검색 limit (1 ~ MAX_SEARCH_LIMIT 로 clamp)
    DEFAULT_SEARCH_LIMIT: int = Field(default=20, ge=1)
    MAX_SEARCH_LIMIT: int = Field(default=100, ge=1)

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH) if ENV_FILE_PATH.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
