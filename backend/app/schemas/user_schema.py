# 요청/응답 스키마 정의 (Pydantic 모델)
#
# 주니어 개발자님께: EmailStr 은 도메인 부분을 소문자로 바꿔서 돌려줍니다.
# email 은 입력한 대소문자 그대로 저장하고 정규화는 emailLower 만 담당하므로,
# 형식 검사만 하고 원래 문자열을 돌려주는 EmailAddress 타입을 씁니다.

from typing import Annotated, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"Invalid email address: {e}")
    return value


EmailAddress = Annotated[str, AfterValidator(check_email)]


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailAddress
    age: Optional[int] = Field(default=None, ge=0)
    phone: Optional[str] = None


class UserUpdate(BaseModel):
    # 전달된 필드만 $set 합니다 (exclude_unset)
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailAddress] = None
    age: Optional[int] = Field(default=None, ge=0)
    phone: Optional[str] = None


class BulkUpsertUser(BaseModel):
    email: EmailAddress
    name: str = Field(min_length=1)
    age: Optional[int] = Field(default=None, ge=0)


class BulkUpsertRequest(BaseModel):
    users: List[BulkUpsertUser]


class BulkCreateRequest(BaseModel):
    users: List[UserCreate]


class DeleteUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    deleted_by: Optional[str] = Field(default=None, alias="deletedBy")
    delete_reason: Optional[str] = Field(default=None, alias="deleteReason")


class BulkUpsertResult(BaseModel):
    matched: int
    modified: int
    upserted: int
    errors: List[str]


class SkippedUser(BaseModel):
    email: str
    reason: str


class BulkCreateResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inserted_count: int = Field(alias="insertedCount")
    skipped: List[SkippedUser]
