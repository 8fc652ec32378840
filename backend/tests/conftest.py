# 공용 테스트 픽스처
# - mongomock-motor 인메모리 컬렉션 (emailLower unique 인덱스 포함)
# - 컬렉션을 주입한 UserRepository / UserService
# - 저장소 의존성을 바꿔 끼운 FastAPI TestClient

import asyncio

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.main import app
from app.models.user import EMAIL_LOWER_INDEX
from app.repositories.user_repository import UserRepository, get_user_repository
from app.services.user_service import UserService


@pytest.fixture()
def collection():
    """테스트마다 새로운 users 컬렉션."""
    coll = AsyncMongoMockClient()["user_service_test"]["users"]
    asyncio.run(coll.create_index([("emailLower", 1)], name=EMAIL_LOWER_INDEX, unique=True))
    return coll


@pytest.fixture()
def repo(collection):
    return UserRepository(collection)


@pytest.fixture()
def service(repo):
    return UserService(repo)


@pytest.fixture()
def client(repo):
    """get_user_repository 를 인메모리 저장소로 교체한 TestClient.

    컨텍스트 매니저로 열지 않으므로 startup(MongoDB 연결)은 실행되지 않습니다.
    """
    app.dependency_overrides[get_user_repository] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()
