# 필드 화이트리스트 & 프로젝션
# - basic / admin 프리셋
# - fields 파라미터 파싱 (요청 경계에서 한 번만 수행)
# - MongoDB 프로젝션 dict 생성

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Tuple, Union

from .exceptions import InvalidFieldsError

# 항상 조회 가능한 기본 필드
BASIC_FIELDS: Tuple[str, ...] = ("_id", "name", "email", "age", "phone", "createdAt", "updatedAt")

# admin 프리셋은 정규화 이메일과 삭제 감사(audit) 필드를 추가로 노출
ADMIN_FIELDS: Tuple[str, ...] = BASIC_FIELDS + (
    "emailLower", "isDeleted", "deletedAt", "deletedBy", "deleteReason",
)

# 명시적 필드 목록에 허용되는 전체 필드
ALLOWED_FIELDS: Tuple[str, ...] = ADMIN_FIELDS

# 명시적으로 요청하지 않으면 숨기는 필드 (revision_id: Beanie 버전 필드)
HIDDEN_FIELDS: Tuple[str, ...] = ("revision_id", "isDeleted", "deletedAt")

PresetName = Literal["basic", "admin"]

FIELD_PRESETS: Dict[str, Tuple[str, ...]] = {
    "basic": BASIC_FIELDS,
    "admin": ADMIN_FIELDS,
}


@dataclass(frozen=True)
class PresetFields:
    name: PresetName


@dataclass(frozen=True)
class ExplicitFields:
    names: Tuple[str, ...]


FieldSelection = Union[PresetFields, ExplicitFields]

BASIC = PresetFields("basic")
ADMIN = PresetFields("admin")


def parse_fields(raw: Optional[str]) -> Optional[FieldSelection]:
    """fields 쿼리 문자열을 FieldSelection 으로 변환합니다.

    - None / 빈 문자열 → None (기본 프로젝션)
    - "basic" / "admin" → PresetFields
    - "name,email" → ExplicitFields(("name", "email"))

    화이트리스트에 없는 필드가 하나라도 있으면 InvalidFieldsError.
    """
    if raw is None or not raw.strip():
        return None
    raw = raw.strip()
    if raw in FIELD_PRESETS:
        return PresetFields(raw)

    names = []
    for part in raw.split(","):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    if not names:
        return None

    invalid = [name for name in names if name not in ALLOWED_FIELDS]
    if invalid:
        raise InvalidFieldsError(invalid)
    return ExplicitFields(tuple(names))


def resolve_projection(selection: Optional[FieldSelection]) -> Dict[str, int]:
    if selection is None:
        return {field: 0 for field in HIDDEN_FIELDS}
    if isinstance(selection, PresetFields):
        return {field: 1 for field in FIELD_PRESETS[selection.name]}
    return {field: 1 for field in selection.names}
