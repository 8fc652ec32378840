# 오프셋 기반 페이지네이션 유틸
# - page/pageSize 를 정수로 변환하고 최소 1로 보정
# - 목록 조회와 count 를 동시에 실행 (asyncio.gather)
#
# 주니어 개발자님께: 두 쿼리는 별개의 읽기라서 트랜잭션으로 묶이지 않습니다.
# 동시에 쓰기가 일어나면 total 이 items 와 잠깐 어긋날 수 있습니다.

import asyncio
import math
from typing import Any, Dict, Optional, Union

from ..repositories.user_repository import Projection, SortSpec, UserRepository

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


def _to_positive_int(value: Union[int, str, None], default: int) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, number)


def page_window(page: Union[int, str, None], page_size: Union[int, str, None], default_page_size: int = DEFAULT_PAGE_SIZE):
    """(page, page_size, skip) 를 계산합니다."""
    parsed_page = _to_positive_int(page, DEFAULT_PAGE)
    parsed_page_size = _to_positive_int(page_size, default_page_size)
    return parsed_page, parsed_page_size, (parsed_page - 1) * parsed_page_size


async def paginate(
    repo: UserRepository,
    filter: Dict[str, Any],
    projection: Projection = None,
    sort: Optional[SortSpec] = None,
    page: Union[int, str, None] = None,
    page_size: Union[int, str, None] = None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    parsed_page, parsed_page_size, skip = page_window(page, page_size, default_page_size)
    sort = sort or [("createdAt", -1)]

    items, total = await asyncio.gather(
        repo.find(filter, projection, sort=sort, skip=skip, limit=parsed_page_size),
        repo.count(filter),
    )

    return {
        "items": items,
        "meta": {
            "total": total,
            "page": parsed_page,
            "pageSize": parsed_page_size,
            "totalPages": math.ceil(total / parsed_page_size),
        },
    }
