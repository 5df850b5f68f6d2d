from decimal import Decimal

import pytest

from prediction.logic.settings import GameSettings
from prediction.session.game_session import GameSession
from prediction.tests.mocks import FixedAnswerSource, MockExecutor


def make_settings(**overrides) -> GameSettings:
    """GameSettings with short, test-friendly defaults."""
    values = {
        "round_duration_seconds": 5,
        "max_participants": 2,
        "max_guess": 5,
        "stake_amount": Decimal("0.5"),
        "settlement_timeout_seconds": 1,
    }
    values.update(overrides)
    return GameSettings(**values)


@pytest.fixture
def settings() -> GameSettings:
    return make_settings()


@pytest.fixture
def executor() -> MockExecutor:
    return MockExecutor()


@pytest.fixture
def answers() -> FixedAnswerSource:
    return FixedAnswerSource(3)


@pytest.fixture
async def session(settings, executor, answers):
    game_session = GameSession(settings, executor, answer_source=answers, round_prefix="test")
    yield game_session
    await game_session.shutdown()
