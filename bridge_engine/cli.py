"""Command-line interface for Seven Bridge."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

from bridge_engine.config import GameConfig
from bridge_engine.engine import GameEngine
from bridge_engine.errors import IllegalMoveError
from bridge_engine.events import (
    AutomationStopped,
    CardDiscarded,
    CardDrawn,
    ClaimResolved,
    GameEnded,
    MeldExtended,
    MeldPlayed,
)
from bridge_engine.state import GameStatus, TurnPhase

if TYPE_CHECKING:
    from bridge_engine.cards import Card
    from bridge_engine.events import GameEvent
    from bridge_engine.state import GameSnapshot


def _cards(cards) -> str:
    return " ".join(str(c) for c in cards) or "(none)"


def format_state(snapshot: GameSnapshot, hands: list[list[Card]] | None = None) -> str:
    """Format a snapshot for display.

    Args:
        snapshot: State to show.
        hands: Every seat's hand, shown face up when given (watch mode).
    """
    lines = []

    phase = snapshot.phase.value if snapshot.phase else "-"
    lines.append("=" * 60)
    lines.append(f"Turn {snapshot.turn_number} | {snapshot.status.value} | Phase: {phase}")
    lines.append("=" * 60)

    for seat in snapshot.seats:
        prefix = "→ " if seat.seat == snapshot.current_seat else "  "
        lines.append(f"\n{prefix}{seat.name} ({seat.hand_size} cards)")
        lines.append("-" * 40)
        if hands is not None:
            lines.append(f"  Hand: {_cards(hands[seat.seat])}")
        elif seat.seat == snapshot.local_seat:
            hand = ", ".join(f"{i + 1}:{c}" for i, c in enumerate(snapshot.local_hand))
            lines.append(f"  Hand: {hand or '(empty)'}")
        for i, meld in enumerate(seat.melds):
            lines.append(f"  Meld {i}: {_cards(meld)}")

    top = snapshot.top_discard
    lines.append(
        f"\nStock: {snapshot.stock_count} cards | Discard: {len(snapshot.discard_pile)} cards"
        f" (top {top if top else '-'})"
    )

    if snapshot.is_game_over:
        winner = snapshot.seats[snapshot.winner].name
        lines.append("\n" + "=" * 60)
        lines.append(f"GAME OVER - {winner} wins!")
        for score in snapshot.scores:
            lines.append(f"  {score.name}: {score.points} points")
        lines.append("=" * 60)

    return "\n".join(lines)


def describe_event(engine: GameEngine, event: GameEvent) -> str | None:
    """One-line description of a public event, or None for state updates."""
    def name(seat: int) -> str:
        return engine.players[seat].name

    match event:
        case CardDrawn(seat=seat, source=source):
            return f"{name(seat)} draws from the {source.value}"
        case MeldPlayed(seat=seat, cards=cards, claim=claim):
            how = f" ({claim.value})" if claim else ""
            return f"{name(seat)} melds {_cards(cards)}{how}"
        case MeldExtended(seat=seat, owner_seat=owner, card=card):
            return f"{name(seat)} adds {card} to {name(owner)}'s meld"
        case CardDiscarded(seat=seat, card=card):
            return f"{name(seat)} discards {card}"
        case ClaimResolved(claim=None, card=card):
            return f"Nobody claims {card}"
        case GameEnded(winner=winner):
            return f"{name(winner)} goes out!"
        case AutomationStopped(seat=seat, reason=reason):
            return f"{name(seat)} cannot continue: {reason}"
    return None


def _pick_cards(hand: tuple[Card, ...], tokens: list[str]) -> list[Card]:
    picked = []
    for token in tokens:
        index = int(token) - 1
        if not 0 <= index < len(hand):
            raise ValueError(f"No card {token}")
        picked.append(hand[index])
    return picked


HELP = """Commands:
  s / d            draw from stock / discard pile
  m 1 2 3          meld the numbered cards
  a SEAT MELD N    add card N to a seat's meld
  x N              discard card N
  q                quit"""


def _human_turn(engine: GameEngine, snapshot: GameSnapshot) -> bool:
    """Read and apply one command. Returns False to quit."""
    choice = input("\nYour move (h for help): ").strip().lower().split()
    if not choice:
        return True
    command, args = choice[0], choice[1:]
    hand = snapshot.local_hand

    try:
        match command:
            case "q":
                return False
            case "h":
                print(HELP)
            case "s" | "d":
                card = engine.draw_card("stock" if command == "s" else "discard")
                print(f"You draw {card}")
            case "m":
                if not engine.play_meld(_pick_cards(hand, args)):
                    print("That is not a valid meld")
            case "a" if len(args) == 3:
                card = _pick_cards(hand, args[2:])[0]
                if not engine.add_to_meld(int(args[1]), int(args[0]), card):
                    print("That card does not extend that meld")
            case "x" if len(args) == 1:
                engine.discard_card(_pick_cards(hand, args)[0])
            case _:
                print(HELP)
    except (IllegalMoveError, ValueError) as e:
        print(f"Not allowed: {e}")
    return True


def _claim_prompt(engine: GameEngine, seat: int) -> None:
    window = engine.claim_window
    options = []
    if seat in window.pon_seats:
        options.append("p=pon")
    if window.chi_seat == seat:
        options.append("c=chi")
    answer = input(f"\n{window.card} discarded. Claim? ({', '.join(options)}, enter=skip): ")
    answer = answer.strip().lower()
    engine.resolve_claim(
        seat if answer == "p" and seat in window.pon_seats else None,
        seat if answer == "c" and window.chi_seat == seat else None,
    )


def play_interactive(config: GameConfig, seed: int | None = None) -> None:
    """Play a game at the terminal against AI seats."""
    engine = GameEngine.from_config(config.with_overrides(auto_play=True), seed=seed)
    local = config.local_seat

    def on_event(event: GameEvent) -> None:
        line = describe_event(engine, event)
        if line and not (isinstance(event, CardDrawn) and event.seat == local):
            print(line)

    engine.add_listener(on_event)

    print("\nWelcome to Seven Bridge!")
    print(HELP + "\n")
    engine.start_game()

    while not engine.is_game_over:
        snapshot = engine.snapshot()
        if snapshot.status == GameStatus.AI_TURN:
            # An AI seat could not draw: stock and discard pile are used up
            print("\nGame abandoned: no cards left to draw")
            break
        if snapshot.status == GameStatus.CLAIM_WINDOW:
            _claim_prompt(engine, local)
            continue
        print(format_state(snapshot))
        if snapshot.phase == TurnPhase.DRAW:
            print("\nDraw: s (stock) or d (discard)")
        if not _human_turn(engine, snapshot):
            print("Goodbye!")
            return

    print(format_state(engine.snapshot()))


def watch_game(
    num_players: int = 4,
    difficulty: int = 2,
    seed: int | None = None,
    delay: float = 0.5,
) -> None:
    """Watch AI seats play each other."""
    import time

    from simulation.runner import GameRunner, heuristic_lineup

    runner = GameRunner(heuristic_lineup([difficulty] * num_players, seed=seed))
    engine = runner.create_engine(seed)

    def on_event(event: GameEvent) -> None:
        line = describe_event(engine, event)
        if line:
            print(line)

    engine.add_listener(on_event)

    print(f"\nWatching {num_players} AI seats (difficulty {difficulty})")
    print("Press Ctrl+C to stop.\n")

    engine.start_game()
    try:
        while not engine.is_game_over and engine.step_automated() is not None:
            time.sleep(delay)
    except KeyboardInterrupt:
        print("\nStopped.")
    except IllegalMoveError as e:
        print(f"\nGame abandoned: {e}")

    print(format_state(engine.snapshot(), hands=[p.hand for p in engine.players]))


def run_tournament(
    num_games: int = 100,
    num_players: int = 4,
    difficulties: list[int] | None = None,
    seed: int = 42,
) -> None:
    """Run a batch of games and report wins per seat."""
    from simulation.runner import heuristic_lineup, run_batch

    difficulties = difficulties or [1, 2, 3, 2][:num_players]
    difficulties = (difficulties * num_players)[:num_players]
    strategies = heuristic_lineup(difficulties, seed=seed)

    print(f"\nRunning {num_games} games: difficulties {difficulties}")
    results = run_batch(strategies, num_games, start_seed=seed)

    print("\nResults:")
    for seat, strategy in enumerate(strategies):
        wins = sum(1 for r in results if r.winner == seat)
        avg_points = sum(r.final_scores[seat] for r in results) / len(results)
        print(
            f"  Seat {seat} {strategy.name}: {wins} wins ({100 * wins / num_games:.1f}%), "
            f"avg penalty {avg_points:.1f}"
        )
    unfinished = sum(1 for r in results if r.winner is None)
    avg_turns = sum(r.turns for r in results) / len(results)
    avg_duration = sum(r.duration_ms for r in results) / len(results)
    print(f"  Unfinished: {unfinished}")
    print(f"  Average turns: {avg_turns:.1f}")
    print(f"  Average duration: {avg_duration:.2f}ms")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Seven Bridge card game")
    parser.add_argument(
        "--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play against AI")
    play_parser.add_argument("--seed", type=int, help="Random seed")
    play_parser.add_argument("--players", type=int, help="Number of seats (2-6)")
    play_parser.add_argument("--difficulty", type=int, help="AI difficulty (1-3)")
    play_parser.add_argument("--name", help="Your name")

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Watch AI vs AI")
    watch_parser.add_argument("--seed", type=int, help="Random seed")
    watch_parser.add_argument("--players", type=int, default=4, help="Number of seats (2-6)")
    watch_parser.add_argument("--difficulty", type=int, default=2, help="AI difficulty (1-3)")
    watch_parser.add_argument(
        "--delay", type=float, default=0.5, help="Delay between steps (seconds)"
    )

    # Tournament command
    tournament_parser = subparsers.add_parser("tournament", help="Run tournament")
    tournament_parser.add_argument("--games", type=int, default=100, help="Number of games")
    tournament_parser.add_argument("--players", type=int, default=4, help="Number of seats")
    tournament_parser.add_argument(
        "--difficulties", type=int, nargs="+", help="Difficulty per seat (repeated to fill)"
    )
    tournament_parser.add_argument("--seed", type=int, default=42, help="Random seed")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "play":
        overrides = {
            key: value
            for key, value in {
                "player_count": args.players,
                "ai_difficulty": args.difficulty,
                "player_name": args.name,
            }.items()
            if value is not None
        }
        play_interactive(GameConfig.from_env().with_overrides(**overrides), seed=args.seed)
    elif args.command == "watch":
        watch_game(
            num_players=args.players, difficulty=args.difficulty, seed=args.seed, delay=args.delay
        )
    elif args.command == "tournament":
        run_tournament(
            num_games=args.games,
            num_players=args.players,
            difficulties=args.difficulties,
            seed=args.seed,
        )
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
