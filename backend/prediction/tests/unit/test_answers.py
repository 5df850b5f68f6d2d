import pytest

from prediction.logic.answers import RandomAnswerSource


class TestRandomAnswerSource:
    def test_picks_within_range(self):
        source = RandomAnswerSource()
        picks = {source.pick(5) for _ in range(200)}

        assert picks <= {1, 2, 3, 4, 5}
        assert len(picks) > 1

    def test_seed_reproduces_sequence(self):
        first = RandomAnswerSource(seed=42)
        second = RandomAnswerSource(seed=42)

        assert [first.pick(5) for _ in range(10)] == [second.pick(5) for _ in range(10)]

    def test_single_option_always_picked(self):
        assert RandomAnswerSource().pick(1) == 1

    def test_rejects_empty_range(self):
        with pytest.raises(ValueError, match="at least 1"):
            RandomAnswerSource().pick(0)
