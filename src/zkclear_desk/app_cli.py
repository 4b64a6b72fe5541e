from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .auth_flow import AuthFlow
from .backend_client import DeskBackend, FakeDeskBackend
from .config import DeskConfig
from .domain_types import DealerIntent, PlainIntent
from .errors import DeskError, OrchestrationRejected
from .http_backend_client import HttpDeskBackend
from .intent_crypto import IntentCrypto
from .orchestration_client import OrchestrationClient
from .presenters import render_login, render_orchestration, render_panels, render_tracker
from .proof_tracker import ProofTracker, TrackerView
from .role_gate import normalize_role, panels_for
from .session_store import FileSessionBackend, SessionStore
from .track_presenter import detect_color_mode, render_status_line


def _build_backend(config: DeskConfig) -> DeskBackend:
    if config.uses_fake_backend:
        return FakeDeskBackend()
    return HttpDeskBackend(base_url=config.backend_url, timeout_secs=config.timeout_secs)


def _build_store(config: DeskConfig) -> SessionStore:
    if config.session_path is None:
        return SessionStore(None)
    return SessionStore(FileSessionBackend(config.session_path))


class PromptSigner:
    """Shows the login message and reads back the signature produced by an external wallet."""

    def sign_message(self, message: str) -> str:
        print("Sign this message with your wallet (personal_sign):", file=sys.stderr)
        print(message, file=sys.stderr)
        try:
            return input("signature> ").strip()
        except EOFError:
            return ""


async def login(config: DeskConfig, args: argparse.Namespace) -> int:
    flow = AuthFlow(_build_backend(config), _build_store(config))
    result = await flow.verify(args.address, PromptSigner())
    print(render_login(result))
    return 0


async def whoami(config: DeskConfig, args: argparse.Namespace) -> int:
    flow = AuthFlow(_build_backend(config), _build_store(config))
    result = await flow.restore()
    print(render_login(result))
    return 0 if result is not None else 1


def logout(config: DeskConfig, args: argparse.Namespace) -> int:
    AuthFlow(_build_backend(config), _build_store(config)).logout()
    print("Logged out")
    return 0


def panels(config: DeskConfig, args: argparse.Namespace) -> int:
    role = normalize_role(args.role)
    if role is None:
        print(f"Unknown role: {args.role}", file=sys.stderr)
        return 2
    print(render_panels(panels_for(role)))
    return 0


def _plain_intent(args: argparse.Namespace, prefix: str) -> PlainIntent:
    return PlainIntent(
        side=getattr(args, f"{prefix}_side"),
        asset_pair=args.asset_pair,
        amount=args.amount,
        limit_price=args.limit_price,
        settlement_currency=args.settlement_currency,
        counterparty_id=getattr(args, f"{prefix}_counterparty"),
    )


async def _build_dealer_intent(crypto: IntentCrypto, args: argparse.Namespace, prefix: str) -> DealerIntent:
    plain = _plain_intent(args, prefix)
    built = await crypto.build(plain)
    return DealerIntent(
        built=built,
        counterparty_id=plain.counterparty_id,
        country=getattr(args, f"{prefix}_country") or None,
        wallet_address=getattr(args, f"{prefix}_wallet") or None,
    )


async def _follow(tracker: ProofTracker, args: argparse.Namespace) -> None:
    mode = detect_color_mode(args.color)

    def show(view: TrackerView) -> None:
        if view.polls and not view.loading:
            print(render_status_line(view, mode), flush=True)

    tracker.on_update = show
    try:
        view = await tracker.wait()
    finally:
        tracker.cancel()
    print(render_tracker(view))


async def submit(config: DeskConfig, args: argparse.Namespace) -> int:
    backend = _build_backend(config)
    store = _build_store(config)
    crypto = IntentCrypto(key_hex=config.intent_key_hex)

    left = await _build_dealer_intent(crypto, args, "left")
    right = await _build_dealer_intent(crypto, args, "right")
    try:
        result = await OrchestrationClient(backend, store).submit(left, right)
    except OrchestrationRejected as exc:
        if exc.result is not None:
            print(render_orchestration(exc.result))  # type: ignore[arg-type]
        raise
    print(render_orchestration(result))

    if args.no_track:
        return 0
    tracker = ProofTracker(backend, store, interval_secs=config.poll_interval_secs)
    if not tracker.track(result):
        print(render_tracker(tracker.view))
        return 0
    await _follow(tracker, args)
    return 0


async def track(config: DeskConfig, args: argparse.Namespace) -> int:
    backend = _build_backend(config)
    tracker = ProofTracker(backend, _build_store(config), interval_secs=config.poll_interval_secs)
    tracker.start(args.run_id)
    await _follow(tracker, args)
    return 0


def _add_party(parser: argparse.ArgumentParser, prefix: str, counterparty: str, side: str) -> None:
    parser.add_argument(f"--{prefix}-counterparty", default=counterparty)
    parser.add_argument(f"--{prefix}-side", choices=["buy", "sell"], default=side)
    parser.add_argument(f"--{prefix}-country", default="US")
    parser.add_argument(f"--{prefix}-wallet", default=None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zkclear-desk",
        description="Terminal client for the confidential OTC settlement desk.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    lg = sub.add_parser("login", help="Verify wallet ownership and open a session")
    lg.add_argument("--address", required=True)

    sub.add_parser("whoami", help="Restore and revalidate the stored session")
    sub.add_parser("logout", help="Forget the stored session")

    pn = sub.add_parser("panels", help="Show the panels a role may see")
    pn.add_argument("--role", required=True)

    sb = sub.add_parser("submit", help="Encrypt and submit both sides of a trade")
    _add_party(sb, "left", "DEALER-A-CP", "buy")
    _add_party(sb, "right", "DEALER-B-CP", "sell")
    sb.add_argument("--asset-pair", default="ETH/USDC")
    sb.add_argument("--amount", default="100000")
    sb.add_argument("--limit-price", default="2800")
    sb.add_argument("--settlement-currency", default="USDC")
    sb.add_argument("--no-track", action="store_true", help="Do not follow the proof job")
    sb.add_argument("--color", choices=["auto", "always", "never"], default="auto")

    tr = sub.add_parser("track", help="Follow the proof job of a workflow run")
    tr.add_argument("--run-id", required=True)
    tr.add_argument("--color", choices=["auto", "always", "never"], default="auto")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = DeskConfig.from_env()

    try:
        if args.command == "login":
            return asyncio.run(login(config, args))
        if args.command == "whoami":
            return asyncio.run(whoami(config, args))
        if args.command == "logout":
            return logout(config, args)
        if args.command == "panels":
            return panels(config, args)
        if args.command == "submit":
            return asyncio.run(submit(config, args))
        if args.command == "track":
            return asyncio.run(track(config, args))
    except DeskError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 2


if __name__ == "__main__":
    sys.exit(main())
