# 쿼리 필터 빌더
# - HTTP 쿼리 파라미터 → MongoDB 필터/정렬
# - 각 조건(clause)은 독립된 함수라 개별 테스트가 가능합니다
# - 모든 조건은 AND 로 결합됩니다

from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel
from pymongo.errors import OperationFailure

from ..core.exceptions import InvalidQueryError
from ..core.fields import ALLOWED_FIELDS

Clause = Dict[str, Any]
SortSpec = List[Tuple[str, int]]

DEFAULT_SORT_FIELD = "createdAt"

# MongoDB "Regular expression is invalid" 오류 코드
INVALID_REGEX_CODE = 51091


class UserQuery(BaseModel):
    include_deleted: bool = False
    age_in: Optional[List[int]] = None
    age_nin: Optional[List[int]] = None
    name_regex: Optional[str] = None
    has_phone: Optional[bool] = None


def parse_int_list(raw: Optional[str], param: str) -> Optional[List[int]]:
    """"18,25,30" → [18, 25, 30]. 정수가 아닌 값이 있으면 InvalidQueryError."""
    if raw is None or not raw.strip():
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise InvalidQueryError(f"{param} must be a comma-separated list of integers")


# ---- 개별 조건 ----

def not_deleted_clause(include_deleted: bool) -> Optional[Clause]:
    if include_deleted:
        return None
    return {"isDeleted": False}


def age_in_clause(ages: Optional[List[int]]) -> Optional[Clause]:
    if ages is None:
        return None
    return {"age": {"$in": list(ages)}}


def age_nin_clause(ages: Optional[List[int]]) -> Optional[Clause]:
    if ages is None:
        return None
    return {"age": {"$nin": list(ages)}}


def name_regex_clause(pattern: Optional[str]) -> Optional[Clause]:
    # 패턴은 서버(PCRE)가 컴파일. 실패는 UserService 가 InvalidQueryError 로 변환
    if not pattern:
        return None
    return {"name": {"$regex": pattern, "$options": "i"}}


def is_invalid_regex_error(error: OperationFailure) -> bool:
    """서버가 $regex 패턴을 컴파일하지 못해 쿼리를 거절한 경우인지 판단합니다."""
    return error.code == INVALID_REGEX_CODE or "regular expression is invalid" in str(error).lower()


def has_phone_clause(has_phone: Optional[bool]) -> Optional[Clause]:
    if has_phone is None:
        return None
    return {"phone": {"$exists": has_phone}}


# ---- 결합 ----

def combine_clauses(clauses: Iterable[Optional[Clause]]) -> Dict[str, Any]:
    """조건들을 AND 로 합칩니다.

    같은 필드의 연산자 dict 는 병합하고 ({"age": {"$in": .., "$nin": ..}}),
    그 외 필드 충돌은 $and 로 보냅니다.
    """
    combined: Dict[str, Any] = {}
    extra: List[Clause] = []
    for clause in clauses:
        if not clause:
            continue
        for field, condition in clause.items():
            existing = combined.get(field)
            if field not in combined:
                combined[field] = condition
            elif (
                isinstance(existing, dict)
                and isinstance(condition, dict)
                and not set(existing) & set(condition)
            ):
                combined[field] = {**existing, **condition}
            else:
                extra.append({field: condition})
    if extra:
        combined["$and"] = extra
    return combined


def build_filter(query: UserQuery) -> Dict[str, Any]:
    return combine_clauses([
        not_deleted_clause(query.include_deleted),
        age_in_clause(query.age_in),
        age_nin_clause(query.age_nin),
        name_regex_clause(query.name_regex),
        has_phone_clause(query.has_phone),
    ])


def build_sort(sort_by: Optional[str] = None, sort_order: Optional[str] = None) -> SortSpec:
    """정렬 스펙을 만듭니다. 기본값은 최신 생성순(createdAt desc)."""
    field = sort_by or DEFAULT_SORT_FIELD
    if field not in ALLOWED_FIELDS:
        raise InvalidQueryError(f"Invalid sortBy field: {field}")

    if sort_order is None:
        direction = -1 if field == DEFAULT_SORT_FIELD else 1
    elif sort_order.lower() == "asc":
        direction = 1
    elif sort_order.lower() == "desc":
        direction = -1
    else:
        raise InvalidQueryError("sortOrder must be 'asc' or 'desc'")
    return [(field, direction)]
