import argparse
import asyncio
import logging

from holdem.models import Blinds, GameMeta

from .server import HostServer


def main() -> None:
    parser = argparse.ArgumentParser(description="Texas Hold'em table host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--seats", type=int, default=9)
    parser.add_argument("--sb", type=int, default=10)
    parser.add_argument("--bb", type=int, default=20)
    parser.add_argument("--min-buy-in", type=int, default=400)
    parser.add_argument("--max-buy-in", type=int, default=4_000)
    parser.add_argument("--turn-timeout", type=int, default=30, help="Seconds before a timed-out seat checks or folds")
    parser.add_argument("--showdown-delay", type=int, default=5, help="Seconds between a settled hand and the next deal")
    parser.add_argument(
        "--strict-check",
        action="store_true",
        help="Refuse a check while another all-in seat has a bigger bet this street",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    meta = GameMeta(
        max_players=args.seats,
        blinds=Blinds(small=args.sb, big=args.bb),
        min_buy_in=args.min_buy_in,
        max_buy_in=args.max_buy_in,
        turn_timeout=args.turn_timeout,
        showdown_delay=args.showdown_delay,
        strict_check=args.strict_check,
    )
    server = HostServer(meta)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
