"""Request-level tests for FilterDependency / FilterManager."""

from unittest.mock import Mock

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlmodel import Session, select
from starlette.datastructures import QueryParams

from fastapi_filterset.compiler import QueryCompiler
from fastapi_filterset.config import FilterPresets
from fastapi_filterset.exceptions import InvalidSortKeyError
from fastapi_filterset.manager import FilterDependency, FilterManager, parse_filter_params
from fastapi_filterset.models import FilterSet, PaginationQuery
from fastapi_filterset.sorting import SortResolver
from tests.main import Student, registry, seed, sorter


def _names(response) -> list:
    return [s["first_name"] for s in response.json()["data"]]


class TestParseFilterParams:
    def test_scalar(self):
        params = QueryParams("filter[search_query]=ann*+bob&page=2")
        assert parse_filter_params(params) == {"search_query": "ann* bob"}

    def test_bracket_list(self):
        params = QueryParams("filter[with_country_id][]=1&filter[with_country_id][]=2")
        assert parse_filter_params(params) == {"with_country_id": ["1", "2"]}

    def test_single_bracket_item_is_list(self):
        params = QueryParams("filter[with_country_id][]=1")
        assert parse_filter_params(params) == {"with_country_id": ["1"]}

    def test_repeated_key_becomes_list(self):
        params = QueryParams("filter[with_country_id]=1&filter[with_country_id]=2")
        assert parse_filter_params(params) == {"with_country_id": ["1", "2"]}

    def test_other_params_ignored(self):
        params = QueryParams("sorted_by=name&per_page=5&filters[x]=1&filter=3&filter[]=4")
        assert parse_filter_params(params) == {}

    def test_custom_namespace(self):
        params = QueryParams("q[search_query]=bob&filter[search_query]=ann")
        assert parse_filter_params(params, namespace="q") == {"search_query": "bob"}

    def test_order_preserved(self):
        params = QueryParams("filter[b]=1&filter[a]=2")
        assert list(parse_filter_params(params)) == ["b", "a"]


class TestFilterManagerUnit:
    def _manager(self, filter_set=None, sorted_by=None, sorter_=sorter):
        return FilterManager(
            request=Mock(),
            filter_set=FilterSet(filter_set or {}),
            sorted_by=sorted_by,
            pagination=PaginationQuery(page=1, per_page=10),
            compiler=QueryCompiler(registry, strict_mode=True),
            sorter=sorter_,
        )

    def test_apply_filters_and_sort(self):
        manager = self._manager({"with_country_id": "1"}, "name_desc")
        sql = str(manager.apply(select(Student)))
        assert "WHERE student.country_id" in sql
        assert "ORDER BY lower(student.last_name) DESC" in sql

    def test_default_sort_key(self):
        manager = self._manager()
        assert manager.sort_key == "created_at_desc"
        assert "ORDER BY student.created_at DESC" in str(manager.apply(select(Student)))

    def test_no_sorter_rejects_sort_key(self):
        manager = self._manager(sorted_by="name", sorter_=None)
        with pytest.raises(InvalidSortKeyError):
            manager.apply(select(Student))

    def test_no_sorter_no_key(self):
        manager = self._manager(sorter_=None)
        query = select(Student)
        assert manager.apply(query) is query
        assert manager.sort_key is None

    def test_with_filters_merges(self):
        manager = self._manager({"with_country_id": "1"})
        manager.with_filters({"with_enrolled": "true", "with_country_id": ""})
        assert dict(manager.filter_set) == {"with_enrolled": "true"}

    def test_with_sorting(self):
        manager = self._manager(sorted_by="name")
        assert manager.with_sorting(None).sorted_by == "name"
        assert manager.with_sorting("created_at_asc").sorted_by == "created_at_asc"

    def test_strict_mode_reflects_compiler(self):
        assert self._manager().strict_mode is True

    def test_applied_filters_drop_unknown_in_lenient_mode(self):
        manager = FilterManager(
            request=Mock(),
            filter_set=FilterSet({"bogus": "1", "with_country_id": "2"}),
            sorted_by=None,
            pagination=PaginationQuery(page=1, per_page=10),
            compiler=QueryCompiler(registry, strict_mode=False),
            sorter=sorter,
        )
        assert manager.applied_filters is None
        manager.apply(select(Student))
        assert manager.applied_filters == FilterSet({"with_country_id": "2"})
        assert "bogus" in manager.filter_set

    def test_with_filters_accepts_any_name(self):
        manager = self._manager({"with_country_id": "1"})
        manager.with_filters({"params": "x"})
        assert dict(manager.filter_set) == {"with_country_id": "1", "params": "x"}


class TestFilterDependency:
    def test_misconfigured_sort_default_rejected(self):
        broken = SortResolver(default="nope_desc")
        broken.register("created_at", Student.created_at)
        with pytest.raises(ValueError, match="nope_desc"):
            FilterDependency(registry, broken, config=FilterPresets.strict())

    def test_pagination_beyond_limit(self):
        dependency = FilterDependency(
            registry, sorter, config=FilterPresets.limited_pagination(strict_mode=True, max_page=2)
        )
        with pytest.raises(HTTPException) as exc_info:
            dependency._pagination(3, None)
        assert exc_info.value.status_code == 400



class TestEndpoint:
    def test_no_params_default_sort(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/students/")
        assert r.status_code == 200
        assert _names(r) == ["Carl", "Hannah", "Joanna", "Bob", "Annie"]
        assert r.json()["meta"]["sorted_by"] == "created_at_desc"
        assert r.json()["meta"]["filters"] is None

    def test_search(self, session: Session, client: TestClient):
        seed(session)
        r = client.get(
            "/students/", params={"filter[search_query]": "ann* bob", "sorted_by": "name"}
        )
        assert r.status_code == 200
        assert _names(r) == ["Bob"]
        assert r.json()["meta"]["filters"] == {"search_query": "ann* bob"}

    def test_multi_select(self, session: Session, client: TestClient):
        seed(session)
        r = client.get(
            "/students/?filter[with_country_id][]=1&filter[with_country_id][]=2&sorted_by=name"
        )
        assert r.status_code == 200
        assert _names(r) == ["Bob", "Annie", "Hannah"]

    def test_blank_filter_ignored(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/students/?filter[search_query]=&filter[with_country_id][]=")
        assert r.status_code == 200
        assert len(r.json()["data"]) == 5

    def test_combined_filters(self, session: Session, client: TestClient):
        seed(session)
        r = client.get(
            "/students/?filter[with_created_at_gte]=2024-02-01"
            "&filter[without_email_addresses]=true&sorted_by=created_at"
        )
        assert r.status_code == 200
        assert _names(r) == ["Joanna", "Hannah", "Carl"]

    def test_pagination(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/students/?sorted_by=name&page=2&per_page=2")
        assert r.status_code == 200
        js = r.json()
        assert [s["last_name"] for s in js["data"]] == ["Hall", "Jones"]
        assert js["meta"]["pagination"] == {
            "total_items": 5,
            "per_page": 2,
            "current_page": 2,
            "total_pages": 3,
        }
        assert "sorted_by=name" in js["links"]["next"]

    def test_per_page_clamped(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/students/?per_page=1000")
        assert r.status_code == 200
        assert r.json()["meta"]["pagination"]["per_page"] == 100

    def test_invalid_page(self, session: Session, client: TestClient):
        r = client.get("/students/?page=0")
        assert r.status_code == 422


class TestEndpointErrors:
    def test_strict_unknown_filter(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/students/?filter[with_contry_id]=1")
        assert r.status_code == 400
        detail = r.json()["detail"].lower()
        assert "with_contry_id" in detail
        assert "available filters" in detail

    def test_lenient_unknown_filter(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/lenient/students/?filter[with_contry_id]=1")
        assert r.status_code == 200
        assert len(r.json()["data"]) == 5
        assert r.json()["meta"]["filters"] is None

    def test_lenient_meta_lists_applied_filters_only(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/lenient/students/?filter[with_contry_id]=1&filter[with_country_id]=1")
        assert r.status_code == 200
        assert r.json()["meta"]["filters"] == {"with_country_id": "1"}
        assert "with_contry_id" in r.json()["links"]["self"]

    def test_strict_unknown_filter_with_blank_value(self, session: Session, client: TestClient):
        r = client.get("/students/?filter[with_contry_id]=")
        assert r.status_code == 400
        assert "with_contry_id" in r.json()["detail"]


    def test_unknown_sort_key_rejected_even_when_lenient(
        self, session: Session, client: TestClient
    ):
        seed(session)
        for path in ("/students/", "/lenient/students/"):
            r = client.get(f"{path}?sorted_by=bogus_key")
            assert r.status_code == 400
            assert "bogus_key" in r.json()["detail"]

    def test_malformed_value(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/students/?filter[with_country_id]=canada")
        assert r.status_code == 400
        assert "with_country_id" in r.json()["detail"]

    def test_malformed_value_lenient(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/lenient/students/?filter[with_created_at_gte]=someday")
        assert r.status_code == 400


class TestDefaultFilters:
    def test_default_applied(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/enrolled/students/")
        assert r.status_code == 200
        assert "Joanna" not in _names(r)
        assert r.json()["meta"]["filters"] == {"with_enrolled": "true"}

    def test_request_overrides_default(self, session: Session, client: TestClient):
        seed(session)
        r = client.get("/enrolled/students/?filter[with_enrolled]=false")
        assert r.status_code == 200
        assert _names(r) == ["Joanna"]
