# emailLower 백필 스크립트
# - emailLower 필드가 없는 기존 문서에 email.lower() 값을 채웁니다
# - unique 인덱스를 만들기 전에 먼저 실행해야 합니다
#
# 사용법 (backend 디렉토리에서):
#     python -m scripts.backfill_email_lower

import asyncio
import logging
import sys

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.core.retry import ping_with_retry
from app.models.user import normalize_email

logger = logging.getLogger(__name__)


async def backfill_email_lower(collection: AsyncIOMotorCollection) -> int:
    """emailLower 가 없는 문서를 갱신하고, 갱신한 문서 수를 반환합니다."""
    users = [doc async for doc in collection.find({"emailLower": {"$exists": False}}, {"email": 1})]
    logger.info(f"Found {len(users)} users without emailLower field")

    updated = 0
    for user in users:
        if not user.get("email"):
            logger.warning(f"Skipping {user['_id']}: no email")
            continue
        await collection.update_one(
            {"_id": user["_id"]},
            {"$set": {"emailLower": normalize_email(user["email"])}},
        )
        updated += 1

    logger.info(f"Successfully updated {updated} users")
    return updated


async def main() -> int:
    client = AsyncIOMotorClient(settings.MONGODB_URI, serverSelectionTimeoutMS=5000)
    try:
        await ping_with_retry(client, max_attempts=settings.DB_CONNECT_ATTEMPTS)
        collection = client.get_default_database()[settings.USERS_COLLECTION]
        await backfill_email_lower(collection)
        return 0
    except PyMongoError as e:
        logger.error(f"Error during migration: {e}", exc_info=True)
        return 1
    finally:
        client.close()


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    sys.exit(asyncio.run(main()))
