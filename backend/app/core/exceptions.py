# 커스텀 예외 클래스 정의
# 주니어 개발자님께: 서비스 레이어는 HTTPException 대신 아래 예외를 던집니다.
# main.py의 예외 핸들러가 status_code를 보고 HTTP 응답으로 바꿔줍니다.
# 이렇게 하면 서비스 로직을 FastAPI 없이도 테스트할 수 있습니다.

from typing import List


class UserServiceError(Exception):
    """사용자 서비스 관련 기본 예외 클래스

    Attributes:
        message: 클라이언트에게 그대로 노출되는 에러 메시지
        status_code: 매핑될 HTTP 상태 코드
    """
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidQueryError(UserServiceError):
    """잘못된 쿼리 파라미터 (정규식, 커서, 정렬 필드, 빈 검색어 등)"""
    status_code = 400


class InvalidFieldsError(InvalidQueryError):
    """fields 파라미터에 허용되지 않은 필드가 포함된 경우

    주니어 개발자님께: 잘못된 필드를 조용히 버리지 않고 요청 자체를 거절합니다.

    Attributes:
        invalid_fields: 화이트리스트에 없는 필드 이름 목록
    """
    def __init__(self, invalid_fields: List[str]):
        self.invalid_fields = invalid_fields
        super().__init__(f"Invalid fields: {', '.join(invalid_fields)}")


class UserNotFoundError(UserServiceError):
    """대상 사용자가 없거나 기대한 상태가 아닌 경우"""
    status_code = 404

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User with ID {user_id} not found")


class UserConflictError(UserServiceError):
    """이메일 중복, 이미 삭제된 사용자 삭제, 삭제되지 않은 사용자 복구 등"""
    status_code = 409


class TextIndexMissingError(UserServiceError):
    """텍스트 인덱스 없이 전문 검색을 시도한 경우

    주니어 개발자님께: "검색 결과 없음"과 구분해야 합니다.
    빈 리스트를 돌려주면 운영자가 인덱스 누락을 알아차릴 수 없습니다.
    """
    status_code = 400

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(
            f"Text index not found on {collection} collection. "
            "Run scripts/ensure_indexes.py to create the required text index."
        )
