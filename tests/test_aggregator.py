import pytest

from libusage.detector.aggregator import ByClassAggregator, UniqueSetAggregator, make_aggregator
from libusage.detector.findings import MatchResult


def result(cls: str, method: str, callee: str) -> MatchResult:
    return MatchResult(cls, f"{cls}.{method}()V", callee)


CALLS = [
    result("com.example.Zeta", "a", "com.acme.Util.run()V"),
    result("com.example.Alpha", "b", "com.acme.Util.run()V"),
    result("com.example.Zeta", "a", "com.acme.Util.run()V"),
    result("com.example.Zeta", "a", "com.acme.Util.stop()V"),
    result("com.example.Alpha", "c", "com.acme.Log.info()V"),
]


def test_ordered_mode_groups_by_caller_class_and_keeps_everything():
    agg = ByClassAggregator()
    agg.extend(CALLS)

    assert len(agg) == 5
    assert [r.caller_class for r in agg] == ["com.example.Alpha"] * 2 + ["com.example.Zeta"] * 3
    assert [r.caller for r in agg][:2] == ["com.example.Alpha.b()V", "com.example.Alpha.c()V"]
    assert list(agg) == list(agg)


def test_unordered_mode_collapses_exact_pairs_only():
    agg = UniqueSetAggregator()
    agg.extend(CALLS)

    assert len(agg) == 4
    assert set(agg) == set(CALLS)


def test_make_aggregator():
    assert isinstance(make_aggregator("ordered"), ByClassAggregator)
    assert isinstance(make_aggregator("unordered"), UniqueSetAggregator)
    with pytest.raises(ValueError):
        make_aggregator("sorted")
