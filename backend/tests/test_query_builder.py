# 쿼리 필터 빌더 유닛 테스트
import pytest
from pymongo.errors import OperationFailure

from app.core.exceptions import InvalidQueryError
from app.services.query_builder import (
    UserQuery,
    age_in_clause,
    age_nin_clause,
    build_filter,
    build_sort,
    combine_clauses,
    has_phone_clause,
    is_invalid_regex_error,
    name_regex_clause,
    not_deleted_clause,
    parse_int_list,
)


def test_not_deleted_clause():
    assert not_deleted_clause(False) == {"isDeleted": False}
    assert not_deleted_clause(True) is None


def test_age_clauses():
    assert age_in_clause([18, 30]) == {"age": {"$in": [18, 30]}}
    assert age_nin_clause([40]) == {"age": {"$nin": [40]}}
    assert age_in_clause(None) is None
    assert age_nin_clause(None) is None


def test_name_regex_clause_is_case_insensitive():
    assert name_regex_clause("^jo") == {"name": {"$regex": "^jo", "$options": "i"}}
    assert name_regex_clause(None) is None


def test_name_regex_clause_passes_server_syntax_through():
    # \p{L} 은 Python re 에는 없지만 서버(PCRE)는 받아들이는 문법
    assert name_regex_clause(r"^\p{L}+$") == {"name": {"$regex": r"^\p{L}+$", "$options": "i"}}


def test_is_invalid_regex_error():
    assert is_invalid_regex_error(OperationFailure("Regular expression is invalid: missing )", code=51091))
    assert is_invalid_regex_error(OperationFailure("Regular expression is invalid: nothing to repeat", code=2))
    assert not is_invalid_regex_error(OperationFailure("not authorized on users", code=13))


def test_has_phone_clause():
    assert has_phone_clause(True) == {"phone": {"$exists": True}}
    assert has_phone_clause(False) == {"phone": {"$exists": False}}
    assert has_phone_clause(None) is None


def test_combine_merges_operators_on_same_field():
    combined = combine_clauses([age_in_clause([18, 25]), None, age_nin_clause([25])])
    assert combined == {"age": {"$in": [18, 25], "$nin": [25]}}


def test_combine_pushes_conflicting_clauses_into_and():
    combined = combine_clauses([{"age": 30}, {"age": {"$gt": 20}}])
    assert combined == {"age": 30, "$and": [{"age": {"$gt": 20}}]}


def test_build_filter_defaults_to_active_records():
    assert build_filter(UserQuery()) == {"isDeleted": False}
    assert build_filter(UserQuery(include_deleted=True)) == {}


def test_build_filter_all_clauses():
    query = UserQuery(age_in=[20, 30], age_nin=[30], name_regex="doe", has_phone=True)
    assert build_filter(query) == {
        "isDeleted": False,
        "age": {"$in": [20, 30], "$nin": [30]},
        "name": {"$regex": "doe", "$options": "i"},
        "phone": {"$exists": True},
    }


def test_parse_int_list():
    assert parse_int_list("18, 25,30", "ageIn") == [18, 25, 30]
    assert parse_int_list(None, "ageIn") is None
    assert parse_int_list("", "ageIn") is None
    with pytest.raises(InvalidQueryError, match="ageNin"):
        parse_int_list("18,abc", "ageNin")


def test_build_sort_defaults_to_newest_first():
    assert build_sort() == [("createdAt", -1)]
    assert build_sort(sort_order="ASC") == [("createdAt", 1)]
    assert build_sort("name") == [("name", 1)]
    assert build_sort("age", "desc") == [("age", -1)]


def test_build_sort_rejects_unknown_field_and_order():
    with pytest.raises(InvalidQueryError):
        build_sort("password")
    with pytest.raises(InvalidQueryError):
        build_sort("name", "sideways")
