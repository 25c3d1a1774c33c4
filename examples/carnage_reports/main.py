#!/usr/bin/env python3
"""
Carnage Report Fetcher

Pulls a batch of post-game carnage reports from the platform and
summarises them with activity names from the manifest.

Usage:
    RAIDCUE_PLATFORM_API_KEY=... python main.py 14081398580 14081462377 ...

Demonstrates:
- Firing many requests at once while the client keeps to its ceiling
- Manifest warm-up from the SQLite store on the second run
- Turning failures into user-facing messages
"""

import asyncio
import sys

import raidcue
from raidcue.config import Settings


async def fetch_all(instance_ids: list[str]) -> None:
    settings = Settings()
    store = raidcue.SQLiteStore(settings.store_path)

    async with raidcue.PlatformClient.from_settings(settings, store=store) as client:
        print(f"Fetching {len(instance_ids)} reports, {client.scheduler.ceiling} at a time...", flush=True)

        definitions = await client.get_activity_definitions()
        results = await asyncio.gather(
            *(client.get_post_game_carnage_report(i) for i in instance_ids),
            return_exceptions=True,
        )

        for instance_id, result in zip(instance_ids, results):
            if isinstance(result, Exception):
                print(f"  ✗ {instance_id}: {raidcue.user_message(result)}")
                continue
            details = result.get("activityDetails", {})
            definition = definitions.get(str(details.get("directorActivityHash")), {})
            name = definition.get("displayProperties", {}).get("name", "Unknown activity")
            print(f"  ✓ {instance_id}: {name}, {len(result.get('entries', []))} players")

        print(f"Manifest cache: {client.manifest_cache.state.value}")

    await store.close()


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(fetch_all(sys.argv[1:]))


if __name__ == "__main__":
    main()
