#!/usr/bin/env python3
"""
Terminal chat against a running relay.

Usage:
    python demo_chat.py --url http://localhost:8000/mental-health-chat --name Sam
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from aura_chat.entitlements import EntitlementTier, StaticEntitlement
from aura_chat.llm.exceptions import UsageLimitError
from aura_chat.session import ChatSession


def on_fragment(text: str) -> None:
    print(text, end="", flush=True)


def on_complete() -> None:
    print()


def on_error(message: str) -> None:
    print(f"\n⚠️  {message}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the companion.")
    parser.add_argument("--url", default="http://localhost:8000/mental-health-chat")
    parser.add_argument("--name", default="friend")
    parser.add_argument("--premium", action="store_true")
    args = parser.parse_args()

    tier = EntitlementTier.PREMIUM if args.premium else EntitlementTier.FREE
    session = ChatSession(
        args.url, args.name, entitlements=StaticEntitlement(tier)
    )

    print(f"💜 Hi {args.name}! Type a message, or Ctrl-D to leave.")
    while True:
        try:
            text = await asyncio.to_thread(input, "you> ")
        except EOFError:
            print()
            return
        if not text.strip():
            continue

        print("aura> ", end="", flush=True)
        try:
            await session.send(text, on_fragment, on_complete, on_error)
        except UsageLimitError as e:
            print(e)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
