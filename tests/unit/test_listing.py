import pytest

from storefront.core.services.listing import ListParams, Pagination, build_list_params, split_csv
from storefront.rules.models import ListingRules

SORTABLE = {"created_at", "name", "price"}


@pytest.fixture
def listing_rules() -> ListingRules:
    return ListingRules(default_limit=10, max_limit=100)


def test_defaults_when_nothing_given(listing_rules):
    params = build_list_params(listing_rules, SORTABLE)
    assert params == ListParams(page=1, limit=10, sort_by="created_at", sort_order="desc")


def test_page_below_one_is_clamped(listing_rules):
    assert build_list_params(listing_rules, SORTABLE, page=0).page == 1
    assert build_list_params(listing_rules, SORTABLE, page=-3).page == 1


def test_limit_is_clamped_to_range(listing_rules):
    assert build_list_params(listing_rules, SORTABLE, limit=0).limit == 1
    assert build_list_params(listing_rules, SORTABLE, limit=500).limit == 100
    assert build_list_params(listing_rules, SORTABLE, limit=25).limit == 25


def test_unknown_sort_column_falls_back(listing_rules):
    params = build_list_params(listing_rules, SORTABLE, sort_by="password_hash")
    assert params.sort_by == "created_at"

    params = build_list_params(listing_rules, SORTABLE, sort_by="name", default_sort="price")
    assert params.sort_by == "name"


def test_sort_order_only_asc_or_desc(listing_rules):
    assert build_list_params(listing_rules, SORTABLE, sort_order="ASC").sort_order == "asc"
    assert build_list_params(listing_rules, SORTABLE, sort_order="sideways").sort_order == "desc"


def test_blank_search_dropped(listing_rules):
    assert build_list_params(listing_rules, SORTABLE, search="   ").search is None
    assert build_list_params(listing_rules, SORTABLE, search=" drill ").search == "drill"


def test_huge_page_keeps_offset_in_int64(listing_rules):
    params = build_list_params(listing_rules, SORTABLE, page=10**20, limit=7)
    assert params.page < 10**20
    assert 0 <= params.offset <= 2**63 - 1

    params = build_list_params(listing_rules, SORTABLE, page=10**20)
    assert params.offset <= 2**63 - 1


def test_offset():
    assert ListParams(page=3, limit=20).offset == 40


def test_pagination_middle_page():
    pagination = Pagination.build(ListParams(page=2, limit=10), total=35)
    assert pagination.total_pages == 4
    assert pagination.has_next_page is True
    assert pagination.has_prev_page is True


def test_pagination_empty_result():
    data = Pagination.build(ListParams(page=1, limit=10), total=0).as_dict()
    assert data == {
        "current_page": 1,
        "total_pages": 0,
        "total_items": 0,
        "items_per_page": 10,
        "has_next_page": False,
        "has_prev_page": False,
    }


def test_pagination_last_page():
    pagination = Pagination.build(ListParams(page=4, limit=10), total=35)
    assert pagination.has_next_page is False


def test_split_csv():
    assert split_csv("a, b,,c ") == ["a", "b", "c"]
    assert split_csv(None) == []
    assert split_csv("") == []
