import pytest
from lazyseq import SyncSequence


class TestReductions:
    """Test terminal operations (collect, reduce, count, for_each)"""

    def test_reduce_product(self):
        """Test the factorial of 10 as a left fold"""
        result = SyncSequence(range(1, 11)).reduce(lambda p, x: p * x, 1)
        assert result == 3628800, f"Expected 3628800, got {result}"

    def test_reduce_is_left_fold(self):
        """Test that reduce folds from the left with initial first"""
        result = SyncSequence(["a", "b", "c"]).reduce(lambda acc, x: f"({acc}{x})", "")
        assert result == "(((a)b)c)"

    def test_reduce_empty_returns_initial(self):
        sentinel = object()
        assert SyncSequence([]).reduce(lambda acc, x: x, sentinel) is sentinel

    def test_collect_evens(self):
        result = SyncSequence(range(1, 11)).filter(lambda x: x % 2 == 0).collect()
        assert result == [2, 4, 6, 8, 10]

    def test_collect_returns_list(self):
        result = SyncSequence((x for x in "abc")).collect()
        assert isinstance(result, list)
        assert result == ["a", "b", "c"]

    def test_count_reduction(self):
        assert SyncSequence(range(10)).count() == 10
        # 0, 3, 6, 9, 12, 15, 18
        assert SyncSequence(range(20)).filter(lambda x: x % 3 == 0).count() == 7

    def test_count_with_transformations(self):
        result = SyncSequence(range(100)).map(lambda x: x * x).filter(lambda x: x > 50).count()
        # 8^2 through 99^2
        assert result == 92, f"Expected 92, got {result}"

    def test_for_each_visits_in_order(self):
        seen = []
        result = SyncSequence(range(5)).map(lambda x: x + 1).for_each(seen.append)

        assert result is None
        assert seen == [1, 2, 3, 4, 5]

    def test_reductions_on_empty_sequence(self):
        assert SyncSequence([]).collect() == []
        assert SyncSequence([]).count() == 0
        assert SyncSequence([1, 2, 3]).filter(lambda x: x > 10).count() == 0

    def test_reduction_executes_whole_chain(self):
        """Test that a terminal operation runs the deferred work exactly once per item"""
        call_count = 0

        def track_calls(x):
            nonlocal call_count
            call_count += 1
            return x * 2

        seq = SyncSequence(range(10)).map(track_calls)
        assert call_count == 0

        result = seq.reduce(lambda acc, x: acc + x, 0)
        assert call_count == 10
        assert result == 90

    def test_large_reduction_without_materializing(self):
        large_size = 100000
        total = SyncSequence(range(large_size)).reduce(lambda acc, x: acc + x, 0)
        assert total == sum(range(large_size))

        count = SyncSequence(range(large_size)).filter(lambda x: x % 1000 == 0).count()
        assert count == 100


class TestErrorPropagation:
    """Test that failures in supplied functions propagate unchanged"""

    @staticmethod
    def _explode_on_three(x):
        if x == 3:
            raise ValueError("boom at 3")
        return x

    def test_map_failure_propagates_from_collect(self):
        with pytest.raises(ValueError, match="boom at 3"):
            SyncSequence(range(10)).map(self._explode_on_three).collect()

    def test_items_before_failure_are_not_undone(self):
        seen = []
        with pytest.raises(ValueError):
            SyncSequence(range(10)).map(self._explode_on_three).for_each(seen.append)
        assert seen == [0, 1, 2]

    def test_predicate_failure_propagates_from_next(self):
        seq = SyncSequence([1, 2, "three"]).filter(lambda x: x > 1)
        assert next(seq) == 2
        with pytest.raises(TypeError):
            next(seq)

    def test_reducer_failure_propagates(self):
        def reducer(acc, x):
            if x == 2:
                raise KeyError("bad item")
            return acc + x

        with pytest.raises(KeyError):
            SyncSequence([1, 2, 3]).reduce(reducer, 0)

    def test_no_items_after_failure(self):
        """Test that a failed stage produces nothing further"""
        seq = SyncSequence(range(10)).map(self._explode_on_three)
        assert [next(seq), next(seq), next(seq)] == [0, 1, 2]
        with pytest.raises(ValueError):
            next(seq)
        assert seq.collect() == []
