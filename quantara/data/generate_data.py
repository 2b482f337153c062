"""Data generator script for exercising the Quantara Watch API.

Backfills several days of synthetic watch readings for a handful of devices:
- Cumulative step, energy and exercise counters that reset at midnight
- Out-of-order timestamps within each batch
- Readings with missing metrics
- Batch API endpoint, followed by a summary recompute per user
"""

import asyncio
import random
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Tuple

import httpx

# Configuration
API_BASE_URL = "http://localhost:8000"
DEVICES = ["watch_a", "watch_b", "watch_c"]
DAYS = 7
READINGS_PER_HOUR = 12  # One reading every 5 minutes
BATCH_SIZE = 500
MISSING_METRIC_RATE = 0.1
OUT_OF_ORDER_RATE = 0.05
CONCURRENT_REQUESTS = 4

# Resting heart rate per device, to spread readings across zones
RESTING_HEART_RATES = {
    "watch_a": 55,
    "watch_b": 68,
    "watch_c": 80,
}


def maybe(value):
    """Drop a metric now and then, like a watch that missed a sample."""
    return None if random.random() < MISSING_METRIC_RATE else value


def generate_day(device_id: str, day: datetime) -> List[Dict]:
    """Generate one day of readings with running daily totals."""
    resting = RESTING_HEART_RATES[device_id]
    steps = 0
    energy = 0.0
    exercise = 0
    readings = []

    for i in range(24 * READINGS_PER_HOUR):
        timestamp = day + timedelta(minutes=i * 60 // READINGS_PER_HOUR)
        awake = 7 <= timestamp.hour < 23
        workout = timestamp.hour == 18

        if awake:
            steps += random.randint(0, 150) + (600 if workout else 0)
            energy += random.uniform(0.5, 4.0) + (25.0 if workout else 0.0)
            exercise += 5 if workout else 0

        heart_rate = resting + random.randint(-5, 15)
        if workout:
            heart_rate += random.randint(60, 110)

        readings.append({
            "timestamp": timestamp.isoformat() + "Z",
            "heart_rate": maybe(heart_rate),
            "hrv": maybe(round(random.uniform(25, 85), 1)),
            "active_energy": round(energy, 1),
            "steps": steps,
            "exercise_minutes": exercise,
            "wellness_score": maybe(random.randint(45, 95)),
        })

    # Shuffle a few readings to simulate late delivery
    for _ in range(int(len(readings) * OUT_OF_ORDER_RATE)):
        a = random.randrange(len(readings))
        b = random.randrange(len(readings))
        readings[a], readings[b] = readings[b], readings[a]

    return readings


async def send_batch(
    client: httpx.AsyncClient, device_id: str, readings: List[Dict]
) -> Tuple[bool, int, str]:
    """Send a batch of readings; returns (success, stored count, user id)."""
    try:
        response = await client.post(
            f"{API_BASE_URL}/api/sync/batch",
            json={"device_id": device_id, "readings": readings},
            timeout=30.0,
        )
        if response.status_code == 200:
            result = response.json()
            return True, result["synced_count"], result["user_id"]
        print(f"\n[DEBUG] Status {response.status_code}: {response.text[:200]}")
        return False, 0, ""
    except httpx.HTTPError as e:
        print(f"\n[DEBUG] {type(e).__name__}: {str(e)[:200]}")
        return False, 0, ""


async def generate_and_send_data() -> None:
    """Main function to generate, send and roll up test data."""
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
    start_day = today - timedelta(days=DAYS - 1)

    print(f"Generating {DAYS} days of readings for {len(DEVICES)} devices...")
    generation_start = time.time()
    batches: List[Tuple[str, List[Dict]]] = []
    for device_id in DEVICES:
        device_readings = []
        for offset in range(DAYS):
            device_readings.extend(generate_day(device_id, start_day + timedelta(days=offset)))
        for i in range(0, len(device_readings), BATCH_SIZE):
            batches.append((device_id, device_readings[i:i + BATCH_SIZE]))
    total = sum(len(batch) for _, batch in batches)
    print(f"1 - Generated {total} readings in {len(batches)} batches "
          f"({time.time() - generation_start:.2f}s)")

    async with httpx.AsyncClient() as client:
        try:
            health = await client.get(f"{API_BASE_URL}/health", timeout=2.0)
            health.raise_for_status()
        except httpx.HTTPError:
            print(f"ERROR: Cannot connect to API at {API_BASE_URL}")
            print("Make sure the server is running: uvicorn quantara.main:app --reload")
            return

        semaphore = asyncio.Semaphore(CONCURRENT_REQUESTS)
        stored = 0
        errors = 0
        user_ids: Dict[str, str] = {}

        async def send_with_semaphore(device_id: str, readings: List[Dict]) -> None:
            nonlocal stored, errors
            async with semaphore:
                success, count, user_id = await send_batch(client, device_id, readings)
            if success:
                stored += count
                user_ids[device_id] = user_id
            else:
                errors += 1

        send_start = time.time()
        await asyncio.gather(*(send_with_semaphore(d, r) for d, r in batches))
        send_time = time.time() - send_start
        print(f"2 - Stored {stored} readings ({errors} failed batches) in {send_time:.2f}s")

        # Batch sync skips rollups, so rebuild the summaries explicitly
        for device_id, user_id in user_ids.items():
            response = await client.post(f"{API_BASE_URL}/api/summary/{user_id}/recompute")
            summaries = response.json().get("summaries", [])
            print(f"3 - {device_id}: rebuilt {len(summaries)} daily summaries")

    print("\nYou can now query the data:")
    for device_id, user_id in user_ids.items():
        print(f'curl "{API_BASE_URL}/api/trends/{user_id}?days={DAYS}"  # {device_id}')


if __name__ == "__main__":
    print("Quantara Watch Data Generator")
    print("=" * 60)
    asyncio.run(generate_and_send_data())
