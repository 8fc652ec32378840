# 재시도 로직 유틸리티
# 주니어 개발자님께: MongoDB가 아직 기동 중이면 첫 연결이 실패할 수 있습니다.
# 서버 시작/운영 스크립트의 연결 확인(ping)에만 재시도를 적용합니다.
# 요청 처리 중의 DB 호출은 재시도하지 않습니다 (재시도는 호출자 책임).

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import logging
from typing import Type, Tuple

from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

logger = logging.getLogger(__name__)


def create_db_retry_decorator(
    max_attempts: int = 3,
    initial_wait: float = 1.0,
    max_wait: float = 10.0,
    exceptions: Tuple[Type[Exception], ...] = (ConnectionFailure, ServerSelectionTimeoutError)
):
    """
    DB 연결 확인용 재시도 데코레이터를 생성하는 팩토리 함수입니다.

    지수 백오프: 1초 → 2초 → 4초 ... 최대 max_wait 초.
    모든 시도가 실패하면 마지막 예외를 그대로 다시 던집니다 (reraise=True).

    사용 예시:
        @create_db_retry_decorator(max_attempts=5)
        async def ping(client):
            await client.admin.command("ping")
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=2,
            min=initial_wait,
            max=max_wait
        ),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


async def ping_with_retry(client, max_attempts: int = 3) -> None:
    """client.admin.command('ping')을 재시도하며 실행합니다."""
    @create_db_retry_decorator(max_attempts=max_attempts)
    async def _ping():
        await client.admin.command("ping")

    await _ping()
