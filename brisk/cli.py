"""
Brisk CLI - Command-line interface for the game server.

Usage:
    brisk serve [--host H] [--port P]          Run the websocket server
    brisk simulate [--players N] [--seed S]    Play one all-AI match locally
"""

import argparse
import logging
import random
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Brisk - Multiplayer trick-taking card game server",
        prog="brisk",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the websocket server")
    serve_parser.add_argument("--host", help="Bind address (default: BRISK_HOST)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default: BRISK_PORT)")
    serve_parser.add_argument("--log-level", help="Logging level (default: BRISK_LOG_LEVEL)")

    # Simulate command
    sim_parser = subparsers.add_parser("simulate", help="Play one match between AI players")
    sim_parser.add_argument("--players", type=int, default=4, help="Seats at the table (2-5)")
    sim_parser.add_argument("--variant", choices=["cards", "dice"], default="cards")
    sim_parser.add_argument("--seed", type=int, help="Random seed")
    sim_parser.add_argument("--verbose", "-v", action="store_true", help="Log every play")

    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "simulate":
        cmd_simulate(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the server with uvicorn."""
    import uvicorn

    from .api import create_app
    from .config import Settings

    settings = Settings.from_env()
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    if args.log_level:
        settings.log_level = args.log_level.upper()

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger(__name__).info(
        "Starting Brisk on %s:%d (%s)", settings.host, settings.port, settings.env
    )
    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


class _NoTimer:
    def cancel(self):
        return None


def cmd_simulate(args):
    """Seat a host and AI fillers, then let the heuristic bot play the host."""
    from .bots import HeuristicBot
    from .engine_core.state import MAX_PLAYERS, MIN_PLAYERS, GamePhase, GameVariant
    from .errors import GameError
    from .session import GameOrchestrator

    if not MIN_PLAYERS <= args.players <= MAX_PLAYERS:
        print(f"Error: players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")
        sys.exit(1)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format=LOG_FORMAT)

    orchestrator = GameOrchestrator(
        rng=random.Random(args.seed),
        timer_factory=lambda delay, callback: _NoTimer(),
        debug_invariants=True,
    )
    conn = "simulator"
    try:
        created = orchestrator.create_lobby(conn, "Host")
        orchestrator.change_variant(conn, args.variant)
        for _ in range(args.players - 1):
            orchestrator.add_bot(conn)
        orchestrator.start_game(conn)

        session = orchestrator.get_session(created.lobby_code)
        host_id = created.player_id
        bot = HeuristicBot()
        while session.phase == GamePhase.PLAYING:
            if session.current_player.player_id != host_id:
                raise RuntimeError("AI seat left waiting for a turn")
            if session.variant == GameVariant.DICE:
                orchestrator.roll_dice(conn)
            else:
                host = session.get_player(host_id)
                orchestrator.play_card(conn, bot.select_card(session, host).card)
    except GameError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    print(f"Lobby {session.lobby_code}: {session.variant.value}, {session.num_players} players")
    if session.trump_card:
        print(f"Trump: {session.trump_card}")
    print(f"Rounds played: {session.current_round - 1}")
    for player in session.players:
        print(f"  {player.name:<16} {player.score:>4}")
    winner = session.winner
    print(f"Winner: {winner.name if winner else 'none'}")


if __name__ == "__main__":
    main()
