"""
End-to-end run against the in-memory collaborators:
place orders, move every shop order out for delivery (broadcast), then let
every candidate courier hit "Accept" at the same moment and count winners.
"""

import os
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import numpy as np
import pandas as pd

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.service import DeliveryService  # noqa: E402
from collaborators.fakes import (  # noqa: E402
    InMemoryCourierLocator,
    InMemoryItemCatalog,
    InMemoryOtpStore,
    InMemoryShopLookup,
    RecordingNotifier,
)
from couriers.models import Courier  # noqa: E402
import settings  # noqa: E402
from scripts.generate_mock_couriers import CENTER_LAT, CENTER_LON, generate_mock_couriers  # noqa: E402


def load_couriers(filepath="mock_couriers.csv"):
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    absolute_path = os.path.join(base_dir, filepath)
    if not os.path.exists(absolute_path):
        generate_mock_couriers(output_file=absolute_path, seed=7)

    df = pd.read_csv(absolute_path, dtype={"courier_id": str, "phone": str})
    return [
        Courier.new(row.courier_id, row.lat, row.lon, name=row.name, email=row.email, phone=row.phone)
        for row in df.itertuples(index=False)
    ]


def accept_all_at_once(service, assignment_id, candidate_ids):
    barrier = threading.Barrier(len(candidate_ids))

    def accept(courier_id):
        barrier.wait()
        return service.accept_assignment(assignment_id, courier_id)

    with ThreadPoolExecutor(max_workers=len(candidate_ids)) as pool:
        return list(pool.map(accept, candidate_ids))


def run_simulation(num_orders=20, num_shops=5, seed=11):
    print("=== STARTING ACCEPT RACE SIMULATION ===")
    rng = np.random.default_rng(seed)

    couriers = load_couriers()
    shops = InMemoryShopLookup()
    for i in range(num_shops):
        shops.add(f"shop-{i + 1}", owner_id=f"owner-{i + 1}")

    notifier = RecordingNotifier()
    service = DeliveryService(
        shop_lookup=shops,
        nearby_couriers=InMemoryCourierLocator(couriers),
        otp_store=InMemoryOtpStore(),
        item_catalog=InMemoryItemCatalog(),
        notifier=notifier,
    )
    print(f"Loaded {len(couriers)} couriers, {num_shops} shops.\n")

    rows = []
    start_time = time.time()
    for i in range(num_orders):
        shop_id = f"shop-{rng.integers(1, num_shops + 1)}"
        placed = service.place_order(
            user_id=f"customer-{i + 1}",
            cart_items=[{
                "shop": shop_id,
                "id": f"item-{rng.integers(1, 50)}",
                "name": "Thali",
                "quantity": int(rng.integers(1, 4)),
                "price": str(Decimal(int(rng.integers(80, 400)))),
            }],
            payment_method="cod",
            delivery_address={
                "text": f"Street {i + 1}",
                "latitude": float(CENTER_LAT + rng.uniform(-0.1, 0.1)),
                "longitude": float(CENTER_LON + rng.uniform(-0.1, 0.1)),
            },
        )
        if not placed.success:
            print(f"[FAILED] order {i + 1}: {placed.message}")
            continue

        order = placed.data
        shop_order = order["shopOrder"][0]
        moved = service.transition_status(order["id"], shop_order["id"], "out-for-delivery")
        assignment_id = moved.data["assignment"] if moved.success else None
        candidates = [c["id"] for c in moved.data["availableBoys"]] if moved.success else []

        if not assignment_id:
            rows.append({"order_id": order["id"], "candidates": 0, "winners": 0, "winner": None})
            print(f"[NO COURIER] Order {order['id'][:8]} -> nobody in range")
            continue

        results = accept_all_at_once(service, assignment_id, candidates)
        winners = [r.data["assignment"]["assignedTo"] for r in results if r.success]
        rows.append({
            "order_id": order["id"],
            "candidates": len(candidates),
            "winners": len(winners),
            "winner": winners[0] if winners else None,
        })
        print(f"[RACE] Order {order['id'][:8]} -> {len(candidates)} candidates, winner {winners}")

    summary = pd.DataFrame(rows)
    print("\n=== SIMULATION COMPLETE ===")
    print(f"Ran in {time.time() - start_time:.2f}s")
    if not summary.empty:
        print(f"Orders raced: {(summary['candidates'] > 0).sum()} / {len(summary)}")
        print(f"Races with more than one winner: {(summary['winners'] > 1).sum()}")
        print(f"Average candidates per broadcast: {summary['candidates'].mean():.1f}")
    print(f"Realtime events published: {len(notifier.published)}")
    return summary


if __name__ == "__main__":
    settings.configure_logging()
    run_simulation()
