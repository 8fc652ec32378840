# 로깅 설정
# - 각 모듈은 logging.getLogger(__name__) 으로 로거를 얻고
# - 루트 로거 포맷/레벨은 여기서 한 번만 설정합니다

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    # basicConfig는 이미 핸들러가 있으면 아무것도 하지 않으므로 force=True 사용
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
