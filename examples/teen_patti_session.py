#!/usr/bin/env python3
"""
Keep the books of a Teen Patti table from the console.

The cards are dealt and read at the table; this script records every stake,
asks who won each show and prints the final balances when the session ends.
"""

import asyncio
import argparse
import logging

from teenpatti.adapters import CLIAdapter
from teenpatti.api import TeenPattiGame
from teenpatti.common.io_interface import LoggingIOInterface
from teenpatti.events import EngineEventType
from teenpatti.ledger import GamePhase
from teenpatti.ledger.constants import format_amount
from teenpatti.verification import (
    LedgerVerifier,
    SessionStatistics,
    StateTransitionRecorder,
)


async def main():
    parser = argparse.ArgumentParser(description="Teen Patti session ledger.")
    parser.add_argument(
        "-n",
        "--names",
        nargs="+",
        default=["Alice", "Bob", "Charlie"],
        help="names of the players (default: Alice Bob Charlie)",
    )
    parser.add_argument(
        "-r",
        "--rounds",
        type=int,
        default=3,
        help="number of rounds to record (default: 3)",
    )
    parser.add_argument("--boot", type=int, default=10, help="boot amount")
    parser.add_argument("--blind", type=int, default=20, help="blind amount")
    parser.add_argument(
        "--fixed-chaal",
        type=int,
        default=0,
        help="use a fixed chaal amount instead of the multiplier",
    )
    parser.add_argument("--pot-limit", type=int, default=1000, help="pot limit")
    parser.add_argument(
        "-t", "--transcript", help="also write everything shown to this file"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log engine activity"
    )
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    transcript = LoggingIOInterface(args.transcript) if args.transcript else None
    adapter = CLIAdapter(transcript=transcript)

    settings = {
        "boot_amount": args.boot,
        "blind_amount": args.blind,
        "pot_limit": args.pot_limit,
    }
    if args.fixed_chaal:
        settings["chaal_type"] = "fixed"
        settings["chaal_fixed_amount"] = args.fixed_chaal

    game = TeenPattiGame(
        adapter=adapter, config={"settings": settings, "toast_clear_delay": 0}
    )

    def on_round_ended(data):
        print(
            f"Round won by {data.get('winner_name', 'Unknown')} "
            f"({format_amount(data.get('amount') or 0)})"
        )

    game.on(EngineEventType.ROUND_ENDED, on_round_ended)

    await game.initialize()
    recorder = StateTransitionRecorder(engine_id=game.engine.engine_id)

    player_ids = [await game.add_player(name) for name in args.names]
    await game.proceed_to_settings()
    await game.start_game()

    rounds_recorded = 0
    while rounds_recorded < args.rounds:
        state = await game.get_state()

        if state.phase == GamePhase.SHOW_PENDING:
            await game.engine.resolve_pending_show()
        elif state.phase == GamePhase.IN_ROUND:
            await game.play_turn()
        else:
            rounds_recorded += 1
            if rounds_recorded >= args.rounds:
                break
            # Rotate the opener between rounds
            opener = player_ids[rounds_recorded % len(player_ids)]
            await game.set_first_player(opener)

    final_balances = await game.end_session()

    print("\n=== Final Results ===")
    for row in final_balances:
        print(f"{row['name']}: {format_amount(row['balance'])} (net {row['net']:+d})")

    for result in LedgerVerifier(recorder).verify_all():
        print(result)

    pots = SessionStatistics(recorder).pot_summary()
    print(
        f"{pots.count} pots awarded, mean {pots.mean:.1f}, largest {pots.largest}"
    )

    recorder.shutdown()
    await game.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
