"""
Storefront Simulation Script

Seeds a running storefront with menu items and fires concurrent cart
traffic at it, so the remote/local fallback can be watched under load.
Run from project root: python scripts/simulate.py

Author: Khalil_Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_REQUESTS = 50

SAMPLE_CATEGORIES = [
    {"name": "Soups", "color": "red"},
    {"name": "Desserts", "color": "purple"},
]
SAMPLE_ITEMS = [
    {"name": "Lagman", "price": "28000", "category": "Soups", "description": "Hand-pulled noodles in broth"},
    {"name": "Shurpa", "price": "25000", "category": "Soups", "preparation_time": "20"},
    {"name": "Chak-chak", "price": "12000", "category": "Desserts"},
    {
        "name": "Samsa",
        "price": "9000",
        "category": "Salads",
        "variants": [{"id": "samsa-pumpkin", "name": "Pumpkin", "price": 8000}],
    },
]


# =============================================================================
# SEEDING
# =============================================================================

async def seed_menu(client: httpx.AsyncClient) -> list[str]:
    """Create the sample categories and items; returns the new item ids."""
    for category in SAMPLE_CATEGORIES:
        response = await client.post(f"{API_BASE_URL}/api/categories", json=category)
        print(f"   Category {category['name']}: {response.status_code}")

    item_ids = []
    for item in SAMPLE_ITEMS:
        response = await client.post(f"{API_BASE_URL}/api/menu-items", json=item)
        if response.status_code == 201:
            item_ids.append(response.json()["id"])
            print(f"   ✅ {item['name']} → {item_ids[-1]}")
        else:
            print(f"   ❌ {item['name']}: {response.text[:100]}")
    return item_ids


# =============================================================================
# CART TRAFFIC
# =============================================================================

async def send_cart_request(
    client: httpx.AsyncClient,
    request_num: int,
    menu: list[dict[str, Any]],
) -> dict[str, Any]:
    """Add a random menu item (or one of its variants) to the cart."""
    item = random.choice(menu)
    variants = [v for v in item.get("variants") or [] if v.get("isAvailable", True)]
    variant = random.choice(variants) if variants and random.random() < 0.5 else None
    payload = {"item_id": item["id"], "variant_id": variant["id"] if variant else None}
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/cart/items", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)
        if response.status_code == 200:
            return {
                "request_num": request_num,
                "success": True,
                "total": response.json().get("final_total"),
                "time": elapsed,
            }
        return {"request_num": request_num, "success": False, "error": response.text[:100], "time": elapsed}
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {"request_num": request_num, "success": False, "error": str(e)[:100], "time": elapsed}


async def run_simulation(num_requests: int = TOTAL_REQUESTS, seed: bool = True) -> dict[str, Any]:
    """
    Run the simulation.

    Args:
        num_requests: Number of concurrent add-to-cart requests
        seed: Create the sample menu first
    """
    print("=" * 70)
    print("🔥 STOREFRONT SIMULATION")
    print("=" * 70)
    print(f"📋 Requests: {num_requests}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        health = (await client.get(f"{API_BASE_URL}/health")).json()
        print(f"\n🩺 Mode: {health.get('mode')} (remote={health.get('remote_store')}, local={health.get('local_store')})")

        if seed:
            print("\n🌱 Seeding menu...")
            await seed_menu(client)

        sections = (await client.get(f"{API_BASE_URL}/api/menu")).json()
        menu = [item for section in sections for item in section["items"]]
        if not menu:
            print("❌ Menu is empty, nothing to order")
            return {"total": 0, "successful": 0, "failed": 0}

        await client.delete(f"{API_BASE_URL}/api/cart")
        start_time = time.time()
        results = await asyncio.gather(*[
            send_cart_request(client, i + 1, menu) for i in range(num_requests)
        ])
        total_time = round(time.time() - start_time, 2)

        cart = (await client.get(f"{API_BASE_URL}/api/cart")).json()
        stats = (await client.get(f"{API_BASE_URL}/api/stats")).json()

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful: {len(successful)}/{num_requests}")
    print(f"❌ Failed: {len(failed)}/{num_requests}")
    print(f"⏱️  Total Time: {total_time}s")
    print(f"\n🛒 Cart: {cart['total_items']} item(s), {len(cart['items'])} line(s)")
    print(f"   Subtotal: {cart['subtotal']:.0f}  Service: {cart['service_fee']:.0f}  "
          f"Delivery: {cart['delivery_fee']:.0f}  Total: {cart['final_total']:.0f}")
    print(f"\n📈 Menu: {stats['total']} items, {stats['available']} available, {stats['sold_out']} sold out")

    if failed:
        print("\n⚠️  Failed Request Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Request #{f['request_num']}: {f.get('error', 'Unknown error')}")

    # Cart lines must add up to the reported item count
    consistent = sum(line["quantity"] for line in cart["items"]) == cart["total_items"]
    print(f"\n🔍 Cart consistency: {'OK' if consistent else 'MISMATCH'}")
    print("=" * 70)

    return {
        "total": num_requests,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "consistent": consistent,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Storefront simulation")
    parser.add_argument("-n", "--requests", type=int, default=TOTAL_REQUESTS, help="Number of cart requests")
    parser.add_argument("--no-seed", action="store_true", help="Skip creating the sample menu")
    args = parser.parse_args()

    outcome = asyncio.run(run_simulation(args.requests, seed=not args.no_seed))
    sys.exit(0 if outcome.get("consistent", False) else 1)


if __name__ == "__main__":
    main()
