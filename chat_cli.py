#!/usr/bin/env python3
"""Terminal version of the scripted ad-demo chat.

Usage:
    python chat_cli.py scenarios                  # List scenarios and trigger keywords
    python chat_cli.py detect "some text"         # Show which scenario the text starts
    python chat_cli.py chat [--no-delay]          # Interactive chat (/clear, /quit)
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

import ceed_ads
from scenario_engine import conversation, state_machine, templates

logger = logging.getLogger(__name__)


def _fallback_from_args(args):
    name = args.fallback if args.fallback is not None else os.getenv("SCENARIO_FALLBACK")
    try:
        return state_machine.parse_fallback(name)
    except ValueError:
        print(f"❌ Unknown fallback scenario: {name}")
        sys.exit(2)


def cmd_scenarios(args):
    """List all scenarios with their keywords and ad formats."""
    print(f"\n📚 Scenarios\n")

    summaries = templates.get_all_summaries()
    print(f"   {'ID':16} {'Turns':6} {'Formats':14} {'Keywords'}")
    print(f"   {'-'*16} {'-'*6} {'-'*14} {'-'*30}")
    for s in summaries:
        keywords = ", ".join(s["keywords"]) or "(fallback only)"
        print(f"   {s['id']:16} {s['turn_count']:<6} {', '.join(s['ad_formats']):14} {keywords}")

    print(f"\n   Total: {len(summaries)} scenarios\n")


def cmd_detect(args):
    """Show which scenario the given text would start."""
    engine = state_machine.ScenarioEngine(fallback=_fallback_from_args(args))
    detected = engine.detect(args.text)
    if detected is None:
        print("No scenario matched")
    else:
        print(detected.value)


def _print_message(message):
    if message["role"] == "ad":
        ad = message["ad"]
        print(f"   📣 [{ad.format}] {ad.title}")
        if ad.description:
            print(f"      {ad.description}")
        if ad.action_url:
            print(f"      {ad.action_url}")
    else:
        print(f"🤖 {message['text']}")


def cmd_chat(args):
    """Interactive chat loop."""
    client = ceed_ads.initialize()
    session = conversation.ChatSession(
        engine=state_machine.ScenarioEngine(fallback=_fallback_from_args(args)),
        ad_client=client,
    )
    print("\n💬 Type a message. /clear starts over, /quit exits.\n")

    try:
        while True:
            try:
                text = input("you> ")
            except EOFError:
                print()
                break

            command = text.strip().lower()
            if command in ("/quit", "/exit"):
                break
            if command == "/clear":
                session.clear()
                print("🧹 Conversation cleared\n")
                continue

            new_messages = session.send_message(text)
            replies = [m for m in new_messages if m["role"] != "user"]
            if not replies:
                continue
            if not args.no_delay:
                print("…")
                time.sleep(session.next_reply_delay())
            for message in replies:
                _print_message(message)
            print()
    except KeyboardInterrupt:
        print()
    finally:
        ceed_ads.shutdown()


def main():
    load_dotenv(Path(__file__).resolve().parent / ".env")
    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(
        description="CeedAds chat demo CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python chat_cli.py scenarios
  python chat_cli.py detect "I want advice about tech careers"
  python chat_cli.py chat
  python chat_cli.py chat --fallback=none --no-delay
        """
    )
    parser.add_argument(
        "--fallback",
        default=None,
        help="Scenario used when no keyword matches, or 'none' (default: $SCENARIO_FALLBACK or programming_ja)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("scenarios", help="List scenarios")

    detect_parser = subparsers.add_parser("detect", help="Detect scenario for text")
    detect_parser.add_argument("text", help="Opening message")

    chat_parser = subparsers.add_parser("chat", help="Interactive chat")
    chat_parser.add_argument("--no-delay", action="store_true", help="Skip the typing pause")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "scenarios": cmd_scenarios,
        "detect": cmd_detect,
        "chat": cmd_chat,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
