#!/usr/bin/env python3
"""Simulate a chain end-to-end against the in-memory stores.

Drives a conversation the way the SMS webhook would: each answer goes
through ``ConversationEngine.receive`` and every bot reply is printed.

By default a scripted registration is played for the chosen state, so
each state's jurisdiction-specific questions can be inspected.  Use
``--interactive`` to type the answers yourself.

Usage::

    # Scripted run for California
    python scripts/simulate_chain.py --state CA

    # Answer the questions yourself
    python scripts/simulate_chain.py -i

    # Look zip codes up against the real zippopotam.us API
    python scripts/simulate_chain.py --state PA --live-lookup

    # List the states with extra questions
    python scripts/simulate_chain.py --list-states
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from votebot_chains.catalog import ChainStore
from votebot_chains.constants import DEFAULT_CHAIN
from votebot_chains.engine import ConversationEngine
from votebot_chains.errors import LookupNotFoundError
from votebot_chains.interfaces import PlaceLookup
from votebot_chains.lookup import ZippopotamLookup
from votebot_chains.memory import memory_stores
from votebot_chains.models.lookup import Place, PostalCode

USERNAME = "+15555550100"

# One sample zip per state, so city/state get auto-filled offline
_SAMPLE_ZIPS: dict[str, tuple[str, str]] = {
    "AK": ("99501", "Anchorage"),
    "AL": ("35203", "Birmingham"),
    "CA": ("94110", "San Francisco"),
    "CO": ("80202", "Denver"),
    "NY": ("10001", "New York"),
    "OR": ("97201", "Portland"),
    "PA": ("19103", "Philadelphia"),
    "VA": ("22201", "Arlington"),
    "WA": ("98101", "Seattle"),
}

# Canned answers keyed by step name
_ANSWERS: dict[str, str] = {
    "intro_direct": "Ada",
    "intro_refer": "Ada",
    "last_name": "Lovelace",
    "address": "123 Main St",
    "city": "Springfield",
    "date_of_birth": "12/10/1985",
    "email": "ada@example.com",
    "party": "none",
    "mail": "yes",
    "us_citizen": "yes",
    "legal_resident": "yes",
    "will_be_18": "yes",
    "ethnicity": "other",
    "disenfranchised": "no",
    "incompetent": "no",
    "state_id": "D1234567",
    "state_id_issue_date": "01/15/2015",
    "ssn": "123-45-6789",
    "ssn_last4": "6789",
    "state_id_or_ssn_last4": "6789",
    "gender": "female",
    "county": "Sample County",
    "consent_use_signature": "yes",
}

_DOUBLE_LINE = "=" * 62


class SampleLookup(PlaceLookup):
    """Offline lookup over :data:`_SAMPLE_ZIPS`."""

    async def find(self, code: str) -> PostalCode:
        for state, (zip_code, city) in _SAMPLE_ZIPS.items():
            if zip_code == code:
                return PostalCode(code=code, places=[Place(city=city, state=state)])
        raise LookupNotFoundError(f"Zip code not found: {code}")


def _answer_for(step: str, state: str) -> str:
    if step == "zip":
        return _SAMPLE_ZIPS.get(state, ("00000", ""))[0]
    if step == "state":
        return state
    return _ANSWERS.get(step, "ok")


async def run_simulation(
    state: str,
    *,
    interactive: bool,
    live_lookup: bool,
    max_turns: int,
) -> int:
    store = ChainStore()
    store.load()
    lookup: PlaceLookup = ZippopotamLookup() if live_lookup else SampleLookup()
    engine = ConversationEngine(store, lookup=lookup)
    stores = memory_stores()

    print(_DOUBLE_LINE)
    print(f" CHAIN SIMULATION: {DEFAULT_CHAIN}")
    print(f" State:       {state}")
    print(f" Interactive: {'ON' if interactive else 'OFF'}")
    print(_DOUBLE_LINE)

    reply = await engine.receive(stores, username=USERNAME, body="hi")
    user = await stores.users.get_by_username(USERNAME)
    conversation = await stores.conversations.get_recent_by_user(user.id)

    turns = 0
    try:
        while conversation.active and turns < max_turns:
            if reply is not None:
                print(f"\n [BOT] {reply.body}")
            if interactive:
                answer = input(" [YOU] ")
            else:
                answer = _answer_for(conversation.step, state)
                print(f" [YOU] {answer}    ({conversation.step})")

            reply = await engine.receive(stores, username=USERNAME, body=answer)
            conversation = await stores.conversations.get(conversation.id)
            turns += 1
    finally:
        if isinstance(lookup, ZippopotamLookup):
            await lookup.aclose()

    if reply is not None:
        print(f"\n [BOT] {reply.body}")

    user = await stores.users.get(user.id)
    print(f"\n{_DOUBLE_LINE}")
    print(f" Finished at step '{conversation.step}' ({conversation.status.value}) "
          f"after {turns} answers")
    print(f" Name:     {user.first_name} {user.last_name}")
    for key, value in sorted(user.settings.items()):
        print(f"   {key:<24s} {value}")
    print(_DOUBLE_LINE)
    return 0 if not conversation.active else 1


def list_states(store: ChainStore) -> None:
    """Print the jurisdiction requirement table of the default chain."""
    chain = store.get_chain(DEFAULT_CHAIN)
    config = chain.definition.jurisdiction
    print("States with extra questions:")
    print()
    for key, fields in sorted(config.requirements.items()):
        print(f"  {key.upper()}  {', '.join(fields)}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Simulate the voter-registration chain with in-memory stores.",
    )
    parser.add_argument(
        "-s", "--state",
        default="CA",
        help="Two-letter state to register in (default: CA)",
    )
    parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Type the answers instead of playing the scripted ones",
    )
    parser.add_argument(
        "--live-lookup",
        action="store_true",
        help="Resolve zip codes with the real zippopotam.us API",
    )
    parser.add_argument(
        "--max-turns",
        type=int,
        default=60,
        help="Give up after this many answers (default: 60)",
    )
    parser.add_argument(
        "--list-states",
        action="store_true",
        help="List the per-state question table and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show the engine's debug logs",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s [%(name)s] %(message)s",
    )

    if args.list_states:
        store = ChainStore()
        store.load()
        list_states(store)
        sys.exit(0)

    sys.exit(asyncio.run(run_simulation(
        args.state.strip().upper(),
        interactive=args.interactive,
        live_lookup=args.live_lookup,
        max_turns=args.max_turns,
    )))


if __name__ == "__main__":
    main()
