"""
Drive a booking through its lifecycle against a running backend.
request → pay → confirm → release → preview → return
Usage: python scripts/test/simulate_booking.py --car 1 --customer 1 --driver 1 --start 2025-03-07 --end 2025-03-10
"""

import argparse
import json
import requests

BACKEND_URL = "http://localhost:8080/api/v1"


def call(method, path, api_key=None, **kwargs):
    headers = {"X-API-Key": api_key} if api_key else {}
    resp = requests.request(method, f"{BACKEND_URL}{path}", headers=headers, timeout=10, **kwargs)
    print(f"{method} {path} → {resp.status_code}")
    try:
        body = resp.json()
    except ValueError:
        body = resp.text
    print(json.dumps(body, indent=2, default=str))
    return resp.status_code, body


def main():
    global BACKEND_URL
    parser = argparse.ArgumentParser(description="Simulate a full rental lifecycle")
    parser.add_argument("--url", default=BACKEND_URL)
    parser.add_argument("--api-key", default=None)
    parser.add_argument("--car", type=int, required=True)
    parser.add_argument("--customer", type=int, required=True)
    parser.add_argument("--driver", type=int, required=True, help="Staff driver performing the release")
    parser.add_argument("--start", required=True, help="YYYY-MM-DD")
    parser.add_argument("--end", required=True, help="YYYY-MM-DD")
    parser.add_argument("--gas-out", default="High", choices=["High", "Mid", "Low"])
    parser.add_argument("--gas-in", default="Low", choices=["High", "Mid", "Low"])
    parser.add_argument("--damage", default="noDamage", choices=["noDamage", "minor", "major"])
    parser.add_argument("--odometer", type=int, default=1000)
    args = parser.parse_args()
    BACKEND_URL = args.url.rstrip("/")
    key = args.api_key

    code, booking = call("POST", "/bookings", key, json={
        "car_id": args.car, "customer_id": args.customer,
        "start_date": args.start, "end_date": args.end,
    })
    if code != 201:
        return
    booking_id = booking["id"]

    _, fees = call("GET", "/fees", key)
    call("POST", f"/bookings/{booking_id}/payments", key,
         json={"amount": fees.get("reservation_fee", 1000), "payment_method": "cash"})
    call("PUT", f"/bookings/{booking_id}/confirm", key)
    call("POST", f"/bookings/{booking_id}/release", key, json={
        "drivers_id": args.driver, "equipment": "complete", "gas_level": args.gas_out,
        "license_presented": True,
    })

    inspection = {"gas_level": args.gas_in, "damage_status": args.damage,
                  "equipment_status": "complete", "is_clean": True}
    call("POST", f"/bookings/{booking_id}/return/preview", key, json=inspection)
    call("POST", f"/bookings/{booking_id}/return", key, json={**inspection, "odometer": args.odometer})


if __name__ == "__main__":
    main()
