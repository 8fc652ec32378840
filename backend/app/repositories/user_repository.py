# 사용자 저장소 레이어
# - 데이터 접근(조회/생성/수정/집계)만 담당 (서비스 로직 분리)
# - 전역 상태 대신 컬렉션 핸들을 생성자로 주입받습니다
#   (테스트에서는 mongomock-motor 컬렉션을 넣을 수 있습니다)

from typing import Any, Dict, List, Optional, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.results import BulkWriteResult

from ..models.user import User

Document = Dict[str, Any]
Projection = Optional[Dict[str, Any]]
SortSpec = Sequence[Tuple[str, Any]]


class UserRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @property
    def name(self) -> str:
        return self.collection.name

    async def find(
        self,
        filter: Document,
        projection: Projection = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Document]:
        cursor = self.collection.find(filter, projection)
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [doc async for doc in cursor]

    async def count(self, filter: Document) -> int:
        return await self.collection.count_documents(filter)

    async def find_one(self, filter: Document, projection: Projection = None) -> Optional[Document]:
        return await self.collection.find_one(filter, projection)

    async def get_by_email_lower(self, email_lower: str) -> Optional[Document]:
        return await self.collection.find_one({"emailLower": email_lower})

    async def insert(self, doc: Document) -> Any:
        result = await self.collection.insert_one(doc)
        return result.inserted_id

    async def find_one_and_update(
        self,
        filter: Document,
        update: Document,
        projection: Projection = None,
    ) -> Optional[Document]:
        return await self.collection.find_one_and_update(
            filter,
            update,
            projection=projection,
            return_document=ReturnDocument.AFTER,
        )

    async def bulk_write(self, operations: list) -> BulkWriteResult:
        return await self.collection.bulk_write(operations)

    async def aggregate(self, pipeline: List[Document]) -> List[Document]:
        return [doc async for doc in self.collection.aggregate(pipeline)]

    async def has_text_index(self) -> bool:
        # index_information(): {"name": {"key": [("name", "text"), ...], ...}}
        indexes = await self.collection.index_information()
        return any(
            direction == "text"
            for index in indexes.values()
            for _, direction in index.get("key", [])
        )


def get_user_repository() -> UserRepository:
    # init_beanie 이후에만 호출 가능 (main.py startup 참고)
    return UserRepository(User.get_motor_collection())
