"""FinIQ CLI -- the `finiq` command.

Usage:
    finiq serve                        Start the server
    finiq status                       Show configuration and backend status
    finiq stocks                       List the demo stocks
    finiq history SYMBOL               Print a stock's daily bars
    finiq quote SYMBOL                 Print the next simulated live price
    finiq watch SYMBOL [--interval MS] [--ticks N]
                                       Stream live quotes to the terminal
    finiq ask MESSAGE                  Ask the advisor
    finiq predict SYMBOL DIRECTION     Play one prediction round (Up/Down/Flat)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from backend.session import BackendSession
from core.config import AppConfig, get_home_dir, load_config
from core.models.market import LiveQuote


def _load(args: argparse.Namespace) -> AppConfig:
    if args.home:
        os.environ["FINIQ_HOME"] = str(Path(args.home).expanduser())
    return load_config(config_path=args.config)


def _format_quote(quote: LiveQuote) -> str:
    arrow = "▲" if quote.is_up else "▼"
    return (
        f"  {quote.symbol:6s} {quote.price:>10.2f}  {arrow} "
        f"{quote.absolute_change:+.2f} ({quote.change_percent:+.2f}% session)"
    )


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FinIQ server."""
    from main import run, setup_logging
    setup_logging("INFO")

    if args.home:
        os.environ["FINIQ_HOME"] = str(Path(args.home).expanduser())

    try:
        asyncio.run(run(config_path=args.config))
    except KeyboardInterrupt:
        pass


def cmd_status(args: argparse.Namespace) -> None:
    """Show configuration and backend status."""
    from cli.banner import print_banner
    print_banner()

    config = _load(args)
    home = get_home_dir()
    config_path = Path(args.config) if args.config else home / "config.yaml"

    print(f"  Home:     {home}")
    print(f"  Config:   {config_path} ({'exists' if config_path.exists() else 'NOT FOUND'})")
    print(f"  Server:   http://{config.server.host}:{config.server.port}")
    print(f"  Backend:  {config.backend.url or 'not configured'}")
    print(f"  Prices:   every {config.live_prices.poll_interval_ms}ms, max step {config.live_prices.max_step:.2%}")
    print(f"  Alerts:   {'on' if config.alerts.enabled else 'off'} ({config.alerts.poll_interval})")
    print()


def cmd_stocks(args: argparse.Namespace) -> None:
    """List the demo stocks."""
    from main import build_services

    services = build_services(_load(args), session=BackendSession())
    print()
    for s in services.dataset.summaries():
        print(
            f"  {s.symbol:6s} {s.name:28s} {s.sector:24s} "
            f"{s.current_price:>9.2f} {s.change_percent:+6.2f}%  {s.market_cap}"
        )
    print()


def cmd_history(args: argparse.Namespace) -> None:
    """Print a stock's daily bars, oldest first."""
    from main import build_services

    services = build_services(_load(args), session=BackendSession())
    stock = services.dataset.get(args.symbol)
    if stock is None:
        print(f"  Unknown symbol: {args.symbol}")
        sys.exit(1)

    print(f"\n  {stock.symbol} -- {stock.name}\n")
    print(f"  {'date':10s} {'open':>10s} {'high':>10s} {'low':>10s} {'close':>10s} {'volume':>12s}")
    for bar in stock.history:
        print(
            f"  {bar.date.isoformat():10s} {bar.open:>10.2f} {bar.high:>10.2f} "
            f"{bar.low:>10.2f} {bar.close:>10.2f} {bar.volume:>12,d}"
        )
    print()


def cmd_quote(args: argparse.Namespace) -> None:
    """Print the next simulated live price."""
    from main import build_services

    services = build_services(_load(args), session=BackendSession())
    price = services.generator.next_price(args.symbol)
    known = "" if args.symbol in services.dataset else "  (not in dataset, default seed)"
    print(f"  {args.symbol.upper()}: {price:.2f}{known}")


def cmd_watch(args: argparse.Namespace) -> None:
    """Stream live quotes until interrupted or --ticks are printed."""
    from main import build_services
    from market.polling import LivePriceSubscription

    config = _load(args)
    services = build_services(config, session=BackendSession())
    interval = args.interval if args.interval is not None else config.live_prices.poll_interval_ms

    async def _watch() -> None:
        done = asyncio.Event()

        def on_tick(quote: LiveQuote) -> None:
            print(_format_quote(quote))
            if args.ticks and sub.ticks >= args.ticks:
                done.set()

        sub = LivePriceSubscription(services.generator, args.symbol, interval_ms=interval, on_tick=on_tick)
        async with sub:
            print(_format_quote(sub.quote))
            await done.wait()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        pass


def cmd_ask(args: argparse.Namespace) -> None:
    """Ask the advisor one question."""
    from main import build_services

    services = build_services(_load(args))

    async def _ask() -> None:
        try:
            reply = await services.advisor.handle_message(" ".join(args.message))
        finally:
            await services.close()
        print()
        print(reply.reply)
        print()

    asyncio.run(_ask())


def cmd_predict(args: argparse.Namespace) -> None:
    """Play one prediction round."""
    from core.errors import UnknownSymbolError
    from main import build_services

    services = build_services(_load(args))

    async def _play() -> None:
        try:
            played = await services.playground.play(args.symbol, args.direction)
        finally:
            await services.close()
        verdict = "correct" if played.user_correct else "incorrect"
        print()
        print(f"  {played.symbol}: you said {played.direction}, AI said "
              f"{played.ai_prediction.direction} ({played.ai_prediction.confidence}% confidence)")
        print(f"  Outcome: {played.outcome.outcome} -- you were {verdict}")
        print()
        print(f"  {played.explanation}")
        print()

    try:
        asyncio.run(_play())
    except (UnknownSymbolError, ValueError) as e:
        print(f"  {e}")
        sys.exit(1)


def positive_int(value: str) -> int:
    """argparse type for millisecond intervals."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="finiq",
        description="FinIQ -- finance education, simulated markets and a rule-based advisor",
    )
    parser.add_argument("--home", type=str, default=None, help="FinIQ home directory")
    parser.add_argument("--config", "-c", type=str, default=None, help="Path to config.yaml")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the FinIQ server")
    sub.add_parser("status", help="Show configuration and backend status")
    sub.add_parser("stocks", help="List the demo stocks")

    history = sub.add_parser("history", help="Print a stock's daily bars")
    history.add_argument("symbol", type=str)

    quote = sub.add_parser("quote", help="Print the next simulated live price")
    quote.add_argument("symbol", type=str)

    watch = sub.add_parser("watch", help="Stream live quotes")
    watch.add_argument("symbol", type=str)
    watch.add_argument("--interval", type=positive_int, default=None, help="Polling interval in ms")
    watch.add_argument("--ticks", type=int, default=0, help="Stop after N ticks (0 = run until Ctrl-C)")

    ask = sub.add_parser("ask", help="Ask the advisor")
    ask.add_argument("message", nargs="+", type=str)

    predict = sub.add_parser("predict", help="Play one prediction round")
    predict.add_argument("symbol", type=str)
    predict.add_argument("direction", type=str, help="Up | Down | Flat")

    return parser


def main() -> None:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command != "serve":
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    commands = {
        "serve": cmd_serve,
        "status": cmd_status,
        "stocks": cmd_stocks,
        "history": cmd_history,
        "quote": cmd_quote,
        "watch": cmd_watch,
        "ask": cmd_ask,
        "predict": cmd_predict,
    }

    handler = commands.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
