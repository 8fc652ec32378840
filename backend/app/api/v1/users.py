# 사용자 라우터
# - POST   /api/v1/users                 : 단건 생성
# - POST   /api/v1/users/bulk            : 벌크 생성 (중복은 skipped)
# - POST   /api/v1/users/bulk-upsert     : 멱등 벌크 upsert
# - GET    /api/v1/users/stats           : 통계 ($facet 집계)
# - GET    /api/v1/users                 : 필터 목록 / 페이지네이션 목록
# - GET    /api/v1/users/cursor          : 커서 페이지네이션
# - GET    /api/v1/users/search          : 전문 검색 (q 필수)
# - GET    /api/v1/users/{id}            : 단건 조회
# - PUT    /api/v1/users/{id}            : 수정
# - DELETE /api/v1/users/{id}            : 소프트 삭제 (감사 body 선택)
# - POST   /api/v1/users/{id}/restore    : 복구
#
# 주의: /stats, /cursor, /search 는 /{id} 보다 먼저 선언해야 합니다.

from typing import Any, Optional

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.encoders import jsonable_encoder

from ...core.config import settings
from ...core.fields import parse_fields
from ...schemas.user_schema import (
    BulkCreateRequest,
    BulkCreateResult,
    BulkUpsertRequest,
    BulkUpsertResult,
    DeleteUserRequest,
    UserCreate,
    UserUpdate,
)
from ...services.query_builder import UserQuery, parse_int_list
from ...services.user_service import UserService, get_user_service

router = APIRouter(prefix="/users", tags=["users"])


def encode(data: Any) -> Any:
    # ObjectId 는 문자열로, datetime 은 ISO 문자열로
    return jsonable_encoder(data, custom_encoder={ObjectId: str})


@router.post("", status_code=status.HTTP_201_CREATED, summary="사용자 생성 (대소문자 무시 이메일 중복 체크)")
async def create_user(payload: UserCreate, service: UserService = Depends(get_user_service)):
    return encode(await service.create(payload))


@router.post("/bulk", response_model=BulkCreateResult, summary="벌크 생성 (중복 이메일은 건너뜀)")
async def bulk_create_users(payload: BulkCreateRequest, service: UserService = Depends(get_user_service)):
    return await service.bulk_create(payload.users)


@router.post("/bulk-upsert", response_model=BulkUpsertResult, summary="벌크 upsert (멱등)")
async def bulk_upsert_users(payload: BulkUpsertRequest, service: UserService = Depends(get_user_service)):
    return await service.bulk_upsert(payload.users)


@router.get("/stats", summary="사용자 통계 (요약 / 나이대 / 생성 월)")
async def user_stats(service: UserService = Depends(get_user_service)):
    return encode(await service.get_stats())


@router.get("", summary="사용자 목록 (필터, 선택적 페이지네이션/정렬)")
async def list_users(
    fields: Optional[str] = Query(None, description="basic, admin 또는 콤마로 구분한 필드 목록"),
    age_in: Optional[str] = Query(None, alias="ageIn"),
    age_nin: Optional[str] = Query(None, alias="ageNin"),
    name_regex: Optional[str] = Query(None, alias="nameRegex"),
    has_phone: Optional[bool] = Query(None, alias="hasPhone"),
    include_deleted: bool = Query(False, alias="includeDeleted"),
    page: Optional[int] = None,
    page_size: Optional[int] = Query(None, alias="pageSize"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    service: UserService = Depends(get_user_service),
):
    query = UserQuery(
        include_deleted=include_deleted,
        age_in=parse_int_list(age_in, "ageIn"),
        age_nin=parse_int_list(age_nin, "ageNin"),
        name_regex=name_regex,
        has_phone=has_phone,
    )
    selection = parse_fields(fields)

    # 페이지네이션/정렬 파라미터가 하나라도 있으면 페이지네이션 응답
    if any(value is not None for value in (page, page_size, sort_by, sort_order)):
        result = await service.list_users_paginated(
            query,
            selection,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return encode(result)

    return encode(await service.list_users(query, selection))


@router.get("/cursor", summary="커서 페이지네이션 (_id 오름차순)")
async def list_users_with_cursor(
    after: Optional[str] = None,
    limit: int = Query(settings.DEFAULT_CURSOR_LIMIT, ge=1, le=settings.MAX_CURSOR_LIMIT),
    service: UserService = Depends(get_user_service),
):
    return encode(await service.find_with_cursor(after, limit))


@router.get("/search", summary="전문 검색 (relevance 점수 내림차순)")
async def search_users(
    q: Optional[str] = None,
    fields: Optional[str] = None,
    limit: int = Query(settings.DEFAULT_SEARCH_LIMIT, ge=1, le=settings.MAX_SEARCH_LIMIT),
    service: UserService = Depends(get_user_service),
):
    return encode(await service.text_search(q, parse_fields(fields), limit))


@router.get("/{user_id}", summary="사용자 단건 조회")
async def get_user(
    user_id: str,
    fields: Optional[str] = None,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    service: UserService = Depends(get_user_service),
):
    return encode(await service.find_one(user_id, parse_fields(fields), include_deleted))


@router.put("/{user_id}", summary="사용자 수정")
async def update_user(user_id: str, payload: UserUpdate, service: UserService = Depends(get_user_service)):
    return encode(await service.update(user_id, payload))


@router.delete("/{user_id}", summary="소프트 삭제 (deletedBy / deleteReason 기록)")
async def delete_user(
    user_id: str,
    payload: Optional[DeleteUserRequest] = Body(None),
    service: UserService = Depends(get_user_service),
):
    payload = payload or DeleteUserRequest()
    return encode(await service.soft_delete(user_id, payload.deleted_by, payload.delete_reason))


@router.post("/{user_id}/restore", summary="소프트 삭제 복구")
async def restore_user(user_id: str, service: UserService = Depends(get_user_service)):
    return encode(await service.restore(user_id))
