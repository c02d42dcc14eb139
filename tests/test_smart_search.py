from datetime import datetime

import pytest

from conftest import make_result
from moontv_search import SearchCoreConfig, create_search
from moontv_search.history import SearchHistory
from moontv_search.search.cache import ResultCache
from moontv_search.search.ranker import SearchRanker
from moontv_search.search.smart_search import SmartSearch
from moontv_search.trending import TrendingSearch


@pytest.fixture
def smart(clock):
    history = SearchHistory(clock=clock)
    return SmartSearch(
        ranker=SearchRanker(history_lookup=history, clock=clock),
        cache=ResultCache(clock=clock),
        history=history,
        trending=TrendingSearch(clock=clock),
    )


def test_search_ranks_caches_and_records_history(smart):
    calls = []

    def fetch(query):
        calls.append(query)
        return [
            make_result("测试视频", source="a"),
            make_result("测试视频", source="b"),
            make_result("测试视频：终极版", source="c"),
        ]

    first = smart.search("测试视频", fetch)
    second = smart.search("测试视频", fetch)

    assert len(first) == 2
    assert second == first
    assert calls == ["测试视频"]
    assert smart.history.recent_queries(1)[0]['query'] == "测试视频"


def test_search_limit(smart):
    results = [make_result(f"Show {i}", source=f"s{i}") for i in range(5)]
    assert len(smart.search("show", lambda q: results, limit=2)) == 2
    # Cached list is complete; limit applies on the way out
    assert len(smart.search("show", lambda q: [], limit=3)) == 3


def test_blank_query_returns_nothing(smart):
    assert smart.search("   ", lambda q: [make_result("x")]) == []


def test_failing_fetcher_is_skipped(smart):
    def broken(query):
        raise TimeoutError("source timed out")

    results = smart.search_many("流浪地球", {
        'broken': broken,
        'douban': lambda q: [make_result("流浪地球", source="douban")],
    })
    assert [r.source for r in results] == ["douban"]


def test_fetchers_may_return_dicts(smart):
    results = smart.search("流浪地球", lambda q: [
        {'title': '流浪地球', 'year': 2019, 'source': 'douban', 'douban_id': 26266893, 'poster': 'p.jpg'},
    ])
    assert results[0].external_id == "26266893"
    assert results[0].year == "2019"
    assert results[0].extra == {'poster': 'p.jpg'}


def test_dict_extras_json_cannot_encode_are_cached(smart):
    def fetch(query):
        return [{'title': '流浪地球', 'year': 2019, 'source': 'douban',
                 'updated': datetime(2024, 1, 1)}]

    first = smart.search("流浪地球", fetch)

    assert first[0].extra == {'updated': datetime(2024, 1, 1)}
    assert smart.search("流浪地球", lambda q: []) == first


def test_stats(smart):
    smart.search("流浪地球", lambda q: [make_result("流浪地球")])
    stats = smart.stats()
    assert stats['cache']['count'] == 1
    assert stats['history']['total_count'] == 1
    assert stats['weights']['title'] == 0.35
    assert stats['trending']['total_keywords'] == 1


def test_every_search_counts_towards_trending(smart):
    smart.search("流浪地球", lambda q: [make_result("流浪地球")], category="电影")
    smart.search("流浪地球", lambda q: [], category="电影")
    smart.search("   ", lambda q: [], category="电影")

    assert smart.trending.top("电影")[0]['count'] == 2


def test_suggestions_merge_history_and_trending(smart):
    smart.search("Naruto", lambda q: [make_result("Naruto")])
    smart.trending.record("狂飙", "电视剧")
    smart.trending.record("狂飙", "电视剧")

    assert smart.suggestions() == ["Naruto", "狂飙"]


def test_create_search_from_config(tmp_path):
    config = SearchCoreConfig(cache_ttl=60, cache_max_items=5, log_dir=str(tmp_path))
    smart = create_search(config)

    assert smart.cache.ttl == 60
    assert smart.cache.max_items == 5
    assert smart.ranker.scorer.history_lookup is smart.history
    assert smart.cache._storage is None
    assert (tmp_path / "moontv_search.log").exists()
