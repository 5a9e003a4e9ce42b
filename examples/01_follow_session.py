"""
Example 01: Follow a Session
============================

Demonstrates the simplest end-to-end usage of SessionSync:
- Subscribing to a remote session with open()
- Reacting to projection changes through the event bus
- Reading messages, parts and pending prompts from the view
- Offering a manual retry once automatic reconnection gives up

Run against a local agent server:
    uv run python examples/01_follow_session.py ses_01JXYZ...

Point it at another server:
    ECHOLINE_BASE_URL=https://agents.example.com uv run python examples/01_follow_session.py ses_...
"""

import asyncio
import os
import sys
from pathlib import Path

# Add project root to path when running directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


async def main(session_id: str) -> None:
    from echoline import EndpointConfig, SessionSync, SyncConfig, SyncEvent, TextPart

    print("=== Echoline Follow Session Example ===\n")

    config = SyncConfig(
        endpoint=EndpointConfig(
            base_url=os.environ.get("ECHOLINE_BASE_URL", "http://localhost:3000")
        )
    )

    async with SessionSync.open(session_id, config=config) as sync:
        view = sync.view
        printed: set[str] = set()

        def on_change(event, payload) -> None:
            for message in view.messages:
                text = "".join(
                    part.text
                    for part in view.parts_for_message(message.id)
                    if isinstance(part, TextPart)
                )
                if message.id not in printed and text:
                    printed.add(message.id)
                    print(f"[{message.role}] {text[:120]}")
            for request in view.pending_permissions:
                print(f"  ! permission requested: {request.permission} {request.patterns}")

        def on_exhausted(event, payload) -> None:
            print(f"Connection gave up after {payload['attempts']} attempts: {payload['error']}")
            print("Retrying once more...")
            sync.retry_connection()

        sync.subscribe_events(SyncEvent.STATE_CHANGED, on_change)
        sync.subscribe_events(SyncEvent.CONNECTION_EXHAUSTED, on_exhausted)

        await sync.wait_until_hydrated()
        print(f"Hydrated {len(view.messages)} messages; following live events for 30s\n")
        await asyncio.sleep(30)

        print(f"\nStatus: {view.status.type}")
        if view.session_error:
            print(f"Last session error: {view.session_error}")
        if view.child_session_ids:
            print(f"Sub-agent sessions seen: {', '.join(sorted(view.child_session_ids))}")

    print("\nSubscription closed cleanly.")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: 01_follow_session.py <session-id>")
        sys.exit(2)
    asyncio.run(main(sys.argv[1]))
