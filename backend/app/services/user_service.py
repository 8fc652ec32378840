# 사용자 서비스 레이어
# - 생성 (대소문자 무시 이메일 중복 체크), 조회, 수정
# - 소프트 삭제 / 복구 (감사 필드 기록)
# - 목록: 필터 + 오프셋 페이지네이션 / 커서 페이지네이션
# - 전문 검색, 통계 집계, 벌크 생성 / 벌크 upsert

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import Depends
from pymongo import UpdateOne
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError

from ..core.config import settings
from ..core.exceptions import (
    InvalidQueryError,
    TextIndexMissingError,
    UserConflictError,
    UserNotFoundError,
)
from ..core.fields import ADMIN, BASIC, FieldSelection, resolve_projection
from ..models.user import new_user_document, normalize_email, utcnow
from ..repositories.user_repository import UserRepository, get_user_repository
from ..schemas.user_schema import BulkUpsertUser, UserCreate, UserUpdate
from ..utils.pagination import paginate
from .query_builder import UserQuery, build_filter, build_sort, is_invalid_regex_error

logger = logging.getLogger(__name__)

AGE_BOUNDARIES = [0, 18, 25, 35, 50, 120]
AUDIT_FIELDS = ("deletedAt", "deletedBy", "deleteReason")


def parse_object_id(value: str, message: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise InvalidQueryError(message)
    return ObjectId(value)


class UserService:
    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ---- 단건 ----

    async def create(self, payload: UserCreate) -> Dict[str, Any]:
        email_lower = normalize_email(payload.email)
        if await self.repo.get_by_email_lower(email_lower):
            raise UserConflictError(f'Email "{payload.email}" already exists')

        doc = new_user_document(payload.name, payload.email, payload.age, payload.phone)
        try:
            inserted_id = await self.repo.insert(doc)
        except DuplicateKeyError:
            # 중복 체크와 insert 사이에 다른 요청이 먼저 저장한 경우
            raise UserConflictError(f'Email "{payload.email}" already exists')

        logger.info(f"[UserService] Created user {inserted_id}")
        return await self.find_one(str(inserted_id), BASIC)

    async def find_one(
        self,
        user_id: str,
        fields: Optional[FieldSelection] = None,
        include_deleted: bool = False,
    ) -> Dict[str, Any]:
        oid = parse_object_id(user_id, f"Invalid user id: {user_id}")
        filter: Dict[str, Any] = {"_id": oid}
        if not include_deleted:
            filter["isDeleted"] = False
        user = await self.repo.find_one(filter, resolve_projection(fields))
        if not user:
            raise UserNotFoundError(user_id)
        return user

    async def update(self, user_id: str, patch: UserUpdate) -> Dict[str, Any]:
        oid = parse_object_id(user_id, f"Invalid user id: {user_id}")
        changes = {key: value for key, value in patch.model_dump(exclude_unset=True).items() if value is not None}

        if "email" in changes:
            email_lower = normalize_email(changes["email"])
            taken = await self.repo.find_one({"emailLower": email_lower, "_id": {"$ne": oid}}, {"_id": 1})
            if taken:
                raise UserConflictError(f'Email "{changes["email"]}" already exists')
            changes["emailLower"] = email_lower
        changes["updatedAt"] = utcnow()

        try:
            updated = await self.repo.find_one_and_update(
                {"_id": oid, "isDeleted": False},
                {"$set": changes},
                resolve_projection(ADMIN),
            )
        except DuplicateKeyError:
            raise UserConflictError(f'Email "{changes["email"]}" already exists')

        if not updated:
            raise UserNotFoundError(user_id)
        logger.info(f"[UserService] Updated user {user_id}: {sorted(changes)}")
        return updated

    # ---- 소프트 삭제 / 복구 ----

    async def soft_delete(
        self,
        user_id: str,
        deleted_by: Optional[str] = None,
        delete_reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        oid = parse_object_id(user_id, f"Invalid user id: {user_id}")
        existing = await self.repo.find_one({"_id": oid}, {"isDeleted": 1})
        if not existing:
            raise UserNotFoundError(user_id)
        if existing.get("isDeleted"):
            logger.warning(f"[UserService] Delete rejected, user {user_id} is already deleted")
            raise UserConflictError(f"User with ID {user_id} is already deleted")

        now = utcnow()
        changes: Dict[str, Any] = {"isDeleted": True, "deletedAt": now, "updatedAt": now}
        if deleted_by is not None:
            changes["deletedBy"] = deleted_by
        if delete_reason is not None:
            changes["deleteReason"] = delete_reason

        # isDeleted=False 조건부 업데이트: 동시에 삭제된 경우 None
        deleted = await self.repo.find_one_and_update(
            {"_id": oid, "isDeleted": False},
            {"$set": changes},
            resolve_projection(ADMIN),
        )
        if not deleted:
            raise UserConflictError(f"User with ID {user_id} is already deleted")

        logger.info(f"[UserService] Soft-deleted user {user_id} (by={deleted_by}, reason={delete_reason})")
        return deleted

    async def restore(self, user_id: str) -> Dict[str, Any]:
        oid = parse_object_id(user_id, f"Invalid user id: {user_id}")
        existing = await self.repo.find_one({"_id": oid}, {"isDeleted": 1})
        if not existing:
            raise UserNotFoundError(user_id)
        if not existing.get("isDeleted"):
            logger.warning(f"[UserService] Restore rejected, user {user_id} is not deleted")
            raise UserConflictError(f"User with ID {user_id} is not deleted")

        restored = await self.repo.find_one_and_update(
            {"_id": oid, "isDeleted": True},
            {
                "$set": {"isDeleted": False, "updatedAt": utcnow()},
                "$unset": {field: "" for field in AUDIT_FIELDS},
            },
            resolve_projection(ADMIN),
        )
        if not restored:
            raise UserConflictError(f"User with ID {user_id} is not deleted")

        logger.info(f"[UserService] Restored user {user_id}")
        return restored

    # ---- 목록 ----

    async def list_users(self, query: UserQuery, fields: Optional[FieldSelection] = None) -> List[Dict[str, Any]]:
        try:
            return await self.repo.find(build_filter(query), resolve_projection(fields))
        except OperationFailure as e:
            if query.name_regex and is_invalid_regex_error(e):
                logger.warning(f"[UserService] Rejected nameRegex {query.name_regex!r}: {e}")
                raise InvalidQueryError("Invalid regex pattern")
            raise

    async def list_users_paginated(
        self,
        query: UserQuery,
        fields: Optional[FieldSelection] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> Dict[str, Any]:
        sort = build_sort(sort_by, sort_order)
        try:
            return await paginate(
                self.repo,
                build_filter(query),
                resolve_projection(fields),
                sort=sort,
                page=page,
                page_size=page_size,
                default_page_size=settings.DEFAULT_PAGE_SIZE,
            )
        except OperationFailure as e:
            if query.name_regex and is_invalid_regex_error(e):
                logger.warning(f"[UserService] Rejected nameRegex {query.name_regex!r}: {e}")
                raise InvalidQueryError("Invalid regex pattern")
            raise

    async def find_with_cursor(self, after: Optional[str] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        """_id 오름차순 커서 페이지네이션 (forward-only).

        limit+1 개를 가져와서 다음 페이지 존재 여부를 한 번의 조회로 판단합니다.
        """
        filter: Dict[str, Any] = {"isDeleted": False}
        if after:
            filter["_id"] = {"$gt": parse_object_id(after, "Invalid cursor format")}
        if not limit or limit < 1:
            limit = settings.DEFAULT_CURSOR_LIMIT

        fetched = await self.repo.find(
            filter,
            resolve_projection(BASIC),
            sort=[("_id", 1)],
            limit=limit + 1,
        )
        has_next_page = len(fetched) > limit
        items = fetched[:limit]
        return {
            "items": items,
            "pageInfo": {
                "endCursor": str(items[-1]["_id"]) if items else None,
                "hasNextPage": has_next_page,
            },
        }

    # ---- 전문 검색 ----

    async def text_search(
        self,
        q: Optional[str],
        fields: Optional[FieldSelection] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        q = (q or "").strip()
        if not q:
            raise InvalidQueryError("Query (q) is required")

        if not await self.repo.has_text_index():
            logger.error(f"[UserService] Text search requested but no text index exists on '{self.repo.name}'")
            raise TextIndexMissingError(self.repo.name)

        if limit is None:
            limit = settings.DEFAULT_SEARCH_LIMIT
        limit = max(1, min(limit, settings.MAX_SEARCH_LIMIT))

        score = {"$meta": "textScore"}
        projection = {**resolve_projection(fields), "score": score}
        items = await self.repo.find(
            {"$text": {"$search": q}, "isDeleted": False},
            projection,
            sort=[("score", score)],
            limit=limit,
        )
        return {"items": items}

    # ---- 통계 ----

    async def get_stats(self) -> Dict[str, Any]:
        pipeline = [
            {"$match": {"isDeleted": False}},
            {
                "$facet": {
                    "summary": [
                        {
                            "$group": {
                                "_id": None,
                                "total": {"$sum": 1},
                                "avgAge": {"$avg": "$age"},
                                "minAge": {"$min": "$age"},
                                "maxAge": {"$max": "$age"},
                            }
                        }
                    ],
                    "byAgeRange": [
                        {
                            "$bucket": {
                                "groupBy": "$age",
                                "boundaries": AGE_BOUNDARIES,
                                "default": "Others",
                                "output": {"count": {"$sum": 1}},
                            }
                        }
                    ],
                    "byCreatedMonth": [
                        {
                            "$group": {
                                "_id": {"$dateToString": {"format": "%Y-%m", "date": "$createdAt"}},
                                "count": {"$sum": 1},
                            }
                        },
                        {"$sort": {"_id": 1}},
                    ],
                }
            },
        ]
        results = await self.repo.aggregate(pipeline)
        facets = results[0] if results else {}

        summary_rows = facets.get("summary") or []
        if summary_rows:
            summary = {key: value for key, value in summary_rows[0].items() if key != "_id"}
        else:
            # 빈 컬렉션: $group 결과가 없으므로 0 / None 으로 채움
            summary = {"total": 0, "avgAge": None, "minAge": None, "maxAge": None}

        return {
            "summary": summary,
            "byAgeRange": facets.get("byAgeRange") or [],
            "byCreatedMonth": facets.get("byCreatedMonth") or [],
        }

    # ---- 벌크 ----

    async def bulk_create(self, records: List[UserCreate]) -> Dict[str, Any]:
        """레코드마다 개별 insert. 중복 이메일은 실패가 아니라 skipped 로 보고합니다."""
        inserted_count = 0
        skipped: List[Dict[str, str]] = []
        for record in records:
            if await self.repo.get_by_email_lower(normalize_email(record.email)):
                skipped.append({"email": record.email, "reason": "Duplicate email"})
                continue
            try:
                await self.repo.insert(new_user_document(record.name, record.email, record.age, record.phone))
            except DuplicateKeyError:
                skipped.append({"email": record.email, "reason": "Duplicate email"})
                continue
            inserted_count += 1

        logger.info(f"[UserService] Bulk create: inserted={inserted_count}, skipped={len(skipped)}")
        return {"insertedCount": inserted_count, "skipped": skipped}

    async def bulk_upsert(self, records: List[BulkUpsertUser]) -> Dict[str, Any]:
        """정규화 이메일 기준 멱등 upsert.

        같은 배치 안에 같은 정규화 이메일이 여러 번 있으면 마지막 레코드만 반영합니다.
        배치 전체가 실패하면 카운터는 모두 0, errors 에 원인 메시지를 담아 반환합니다.
        """
        latest: Dict[str, BulkUpsertUser] = {}
        for record in records:
            latest[normalize_email(record.email)] = record

        now = utcnow()
        operations = []
        for email_lower, record in latest.items():
            fields: Dict[str, Any] = {
                "name": record.name,
                "email": record.email,
                "emailLower": email_lower,
                "updatedAt": now,
            }
            if record.age is not None:
                fields["age"] = record.age
            operations.append(
                UpdateOne(
                    {"emailLower": email_lower},
                    # isDeleted 는 insert 시에만 설정: upsert 가 삭제된 사용자를 되살리지 않음
                    {"$set": fields, "$setOnInsert": {"createdAt": now, "isDeleted": False}},
                    upsert=True,
                )
            )

        if not operations:
            return {"matched": 0, "modified": 0, "upserted": 0, "errors": []}

        try:
            result = await self.repo.bulk_write(operations)
        except PyMongoError as e:
            logger.error(f"[UserService] Bulk upsert failed for {len(operations)} records: {e}", exc_info=True)
            return {"matched": 0, "modified": 0, "upserted": 0, "errors": [str(e)]}

        logger.info(
            f"[UserService] Bulk upsert: matched={result.matched_count}, "
            f"modified={result.modified_count}, upserted={result.upserted_count}"
        )
        return {
            "matched": result.matched_count,
            "modified": result.modified_count,
            "upserted": result.upserted_count,
            "errors": [],
        }


def get_user_service(repo: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(repo)
