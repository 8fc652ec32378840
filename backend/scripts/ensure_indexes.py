# 인덱스 프로비저닝 스크립트 (최초 1회 실행)
# - emailLower_unique : 정규화 이메일 유니크 (중복 판정 키)
# - text_search       : name(가중치 3) / email(가중치 1) 전문 검색
# - age_createdAt     : 나이 필터 + 최신순 정렬
#
# 사용법 (backend 디렉토리에서):
#     python -m scripts.ensure_indexes
#
# 주니어 개발자님께: 텍스트 인덱스가 없으면 /api/v1/users/search 는
# 빈 결과가 아니라 400 에러를 돌려줍니다. 배포 후 이 스크립트를 꼭 실행하세요.

import asyncio
import logging
import sys
from typing import List

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING, TEXT, IndexModel
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.core.retry import ping_with_retry
from app.models.user import AGE_CREATED_INDEX, EMAIL_LOWER_INDEX, TEXT_INDEX

logger = logging.getLogger(__name__)

REQUIRED_INDEXES: List[IndexModel] = [
    IndexModel([("emailLower", ASCENDING)], name=EMAIL_LOWER_INDEX, unique=True),
    IndexModel(
        [("name", TEXT), ("email", TEXT)],
        name=TEXT_INDEX,
        weights={"name": 3, "email": 1},
    ),
    IndexModel([("age", ASCENDING), ("createdAt", DESCENDING)], name=AGE_CREATED_INDEX),
]


async def ensure_indexes(collection: AsyncIOMotorCollection) -> List[str]:
    """없는 인덱스만 생성하고, 새로 만든 인덱스 이름 목록을 반환합니다."""
    created = []
    for index in REQUIRED_INDEXES:
        name = index.document["name"]
        existing = await collection.index_information()
        if name in existing:
            logger.info(f"Index '{name}' already exists")
            continue
        try:
            keys = list(index.document["key"].items())
            options = {k: v for k, v in index.document.items() if k not in ("key", "name")}
            await collection.create_index(keys, name=name, **options)
            created.append(name)
            logger.info(f"Created index '{name}'")
        except PyMongoError as e:
            logger.error(f"Failed to create index '{name}': {e}")

    logger.info(f"Current indexes in {collection.name} collection:")
    for name, info in (await collection.index_information()).items():
        logger.info(f"- {name}: {info.get('key')}")
    return created


async def main() -> int:
    client = AsyncIOMotorClient(settings.MONGODB_URI, serverSelectionTimeoutMS=5000)
    try:
        await ping_with_retry(client, max_attempts=settings.DB_CONNECT_ATTEMPTS)
        logger.info("Connected to MongoDB")
        collection = client.get_default_database()[settings.USERS_COLLECTION]
        await ensure_indexes(collection)
        logger.info("Index verification complete")
        return 0
    except PyMongoError as e:
        logger.error(f"Error ensuring indexes: {e}", exc_info=True)
        return 1
    finally:
        client.close()


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    sys.exit(asyncio.run(main()))
