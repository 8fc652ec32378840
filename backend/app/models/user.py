# User 도메인 모델
# - 컬렉션에 저장되는 키는 camelCase (emailLower, isDeleted, createdAt ...)
# - emailLower 는 unique 인덱스 (email 원문이 아니라 소문자 정규화 값이 식별 키)
# - 텍스트 인덱스는 scripts/ensure_indexes.py 로 별도 생성
#
# 주니어 개발자님께: Beanie Document 는 컬렉션 이름과 인덱스 선언에만 씁니다.
# 조회/수정은 필드 프로젝션, $text 정렬, $facet 집계, 조건부 find_one_and_update 가
# 필요해서 저장소(UserRepository)가 motor 컬렉션을 직접 다룹니다.
# 저장 문서의 모양은 new_user_document 가 정의합니다.

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from beanie import Document
from pymongo import ASCENDING, DESCENDING, IndexModel

from ..core.config import settings

EMAIL_LOWER_INDEX = "emailLower_unique"
TEXT_INDEX = "text_search"
AGE_CREATED_INDEX = "age_createdAt"


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def normalize_email(email: str) -> str:
    # 모든 쓰기 경로(create, bulk-create, bulk-upsert, update)가 이 함수만 사용
    return email.lower()


class User(Document):
    class Settings:
        name = settings.USERS_COLLECTION  # 컬렉션명
        indexes = [
            IndexModel([("emailLower", ASCENDING)], name=EMAIL_LOWER_INDEX, unique=True),
            IndexModel([("age", ASCENDING), ("createdAt", DESCENDING)], name=AGE_CREATED_INDEX),
        ]


def new_user_document(
    name: str,
    email: str,
    age: Optional[int] = None,
    phone: Optional[str] = None,
) -> Dict[str, Any]:
    """insert 용 원시 문서를 만듭니다.

    email 은 입력 그대로 두고 emailLower / isDeleted / 타임스탬프를 채웁니다.
    """
    now = utcnow()
    doc: Dict[str, Any] = {
        "name": name,
        "email": email,
        "emailLower": normalize_email(email),
        "isDeleted": False,
        "createdAt": now,
        "updatedAt": now,
    }
    if age is not None:
        doc["age"] = age
    if phone is not None:
        doc["phone"] = phone
    return doc
