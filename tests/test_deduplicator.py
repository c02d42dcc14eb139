from conftest import make_result
from moontv_search.models import ScoredResult
from moontv_search.search.deduplicator import SearchDeduplicator
from moontv_search.search.ranker import deduplicate_only, merge_similar


def _scored(result, score, position=0):
    return ScoredResult(result=result, position=position, final_score=score)


def test_primary_key_prefers_external_id():
    dedup = SearchDeduplicator()
    assert dedup.primary_key(make_result("测试视频", external_id="12345")) == "ext:12345"


def test_primary_key_from_normalized_title_and_year():
    dedup = SearchDeduplicator()
    assert dedup.primary_key(make_result("测试视频  ", year="2023")) == "title:测试视频|2023"
    assert dedup.primary_key(make_result("测试视频", year="")) == "title:测试视频|"


def test_primary_key_for_malformed_record_is_unique():
    dedup = SearchDeduplicator()
    a = make_result("", year="", source="a", id="9")
    assert dedup.primary_key(a, 4) == "src:a|9|#4"
    assert dedup.primary_key(a, 4) != dedup.primary_key(a, 5)


def test_keeps_highest_score_per_key():
    dedup = SearchDeduplicator()
    low = make_result("Naruto", source="a")
    high = make_result("naruto!", source="b")
    other = make_result("Bleach", source="a")

    kept = dedup.deduplicate([_scored(low, 10, 0), _scored(other, 5, 1), _scored(high, 20, 2)])

    assert [s.result for s in kept] == [high, other]


def test_first_processed_wins_ties():
    dedup = SearchDeduplicator()
    first = make_result("Naruto", source="a")
    second = make_result("Naruto", source="b")

    kept = dedup.deduplicate([_scored(first, 10, 0), _scored(second, 10, 1)])

    assert len(kept) == 1
    assert kept[0].result is first


def test_different_years_are_not_merged():
    results = [make_result("测试视频", year="2023"), make_result("测试视频", year="2024")]
    assert deduplicate_only(results) == results


def test_external_id_does_not_merge_with_title_only_record():
    with_id = make_result("测试视频", year="2023", source="douban", external_id="12345")
    title_only = make_result("测试视频", year="2023", source="iqiyi")
    assert deduplicate_only([with_id, title_only]) == [with_id, title_only]


def test_shared_external_id_merges_different_titles():
    a = make_result("The Wandering Earth", year="2019", source="imdb", external_id="26266893")
    b = make_result("流浪地球", year="2019", source="douban", external_id="26266893")
    assert deduplicate_only([a, b]) == [a]


def test_malformed_records_never_collapse():
    a = make_result("", year="", source="a", id="1")
    b = make_result("", year="", source="a", id="1")
    assert deduplicate_only([a, b]) == [a, b]


def test_deduplicate_only_keeps_first_seen_and_input_order():
    results = [
        make_result("B", source="x"),
        make_result("A", source="x"),
        make_result("b", source="y"),
        make_result("C", source="z"),
        make_result("a ", source="z"),
    ]
    assert deduplicate_only(results) == [results[0], results[1], results[3]]


def test_deduplicate_only_is_idempotent():
    results = [
        make_result("测试视频", source="a"),
        make_result("测试视频", source="b"),
        make_result("测试视频：终极版", source="c"),
        make_result("", source="d", id="1"),
        make_result("x", source="e", external_id="7"),
        make_result("y", source="f", external_id="7"),
    ]
    once = deduplicate_only(results)
    twice = deduplicate_only(once)
    assert set(map(id, twice)) == set(map(id, once))


def test_deduplicate_empty():
    assert SearchDeduplicator().deduplicate([]) == []
    assert deduplicate_only([]) == []


# =============================================================================
# COARSE MODE
# =============================================================================

def test_merge_similar_matches_acronym_and_year():
    a = make_result("Attack on Titan", year="2013", source="a")
    b = make_result("Attack-On Titan!!", year="2013", source="b")
    assert deduplicate_only([a, b]) == [a, b]
    assert merge_similar([a, b]) == [a]


def test_merge_similar_requires_matching_year():
    a = make_result("Attack on Titan", year="2013")
    b = make_result("Attack-On Titan!!", year="2014")
    assert merge_similar([a, b]) == [a, b]


def test_merge_similar_ignores_single_letter_acronyms():
    a = make_result("测试视频", year="2023")
    b = make_result("测绘地图", year="2023")
    assert merge_similar([a, b]) == [a, b]


def test_merge_similar_is_transitive():
    # a ~ b by external ID, b ~ c by acronym
    a = make_result("流浪地球", year="2019", external_id="26266893")
    b = make_result("The Wandering Earth", year="2019", external_id="26266893")
    c = make_result("The-Wandering Earth", year="2019")
    d = make_result("Unrelated", year="2019")
    assert merge_similar([a, b, c, d]) == [a, d]


def test_merge_similar_still_applies_primary_keys():
    a = make_result("测试视频", year="2023", source="a")
    b = make_result("测试视频", year="2023", source="b")
    assert merge_similar([a, b]) == [a]
