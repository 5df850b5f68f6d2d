"""Play one short demo round in-process and print the result.

Usage: uv run python bin/play-demo.py [--players N] [--duration SECONDS] [--seed SEED]

Players take addresses from the demo wallet pool and guess at random. Stakes
go through the stub executor, so no funds move.
"""

import argparse
import asyncio
import random
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from prediction.logic.answers import RandomAnswerSource
from prediction.logic.enums import RoundStatus
from prediction.logic.settings import GameSettings
from prediction.session.game_session import GameSession
from prediction.settlement.stub import StubExecutor
from prediction.settlement.wallets import MockWalletPool
from shared.logging import setup_logging


async def main(players: int, duration: float, seed: int | None) -> None:
    settings = GameSettings(round_duration_seconds=duration)
    session = GameSession(
        settings,
        StubExecutor(delay_seconds=0.1, seed=seed),
        answer_source=RandomAnswerSource(seed),
        round_prefix="demo_game",
    )
    wallets = MockWalletPool()
    rng = random.Random(seed)  # noqa: S311

    try:
        for _ in range(players):
            address = wallets.next_address()
            guess = rng.randint(1, settings.max_guess)
            outcome = await session.join(address, guess)
            if outcome.success:
                print(f"{address} guessed {guess} (tx {outcome.tx_id})")
            else:
                print(f"{address} rejected: {outcome.message}")

        while (snapshot := session.status()) is not None and snapshot.status != RoundStatus.ENDED:
            await asyncio.sleep(0.1)

        if snapshot is None:
            print("No round was played")
            return
        print(f"Round {snapshot.round_id} ended, correct answer {snapshot.correct_answer}")
        if snapshot.winner is not None:
            print(f"Winner {snapshot.winner.identity} takes {snapshot.prize_per_winner}")
        else:
            print(f"No winner, pool of {snapshot.prize_pool} stays with the house")
        # let the payout transfer finish before shutting down
        await asyncio.sleep(0.2)
    finally:
        await session.shutdown()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--players", type=int, default=3)
    parser.add_argument("--duration", type=float, default=2.0)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(args.players, args.duration, args.seed))
