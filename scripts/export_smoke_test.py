#!/usr/bin/env python3
"""Create a sample receipt through the local service and save its PDF."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Dict

from fastapi.testclient import TestClient

from receiptpro.config import get_settings
from receiptpro.main import app
from receiptpro.services.store import reset_store

SAMPLE_PROFILE = {
    "name": "Chillbreeze Orchard",
    "email": "hello@chillbreeze.example",
    "phone": "+65 5550 1234",
    "address": "1 Orchard Road",
    "city": "Singapore",
    "country": "Singapore",
}


def _sample_receipt(line_count: int) -> Dict[str, Any]:
    return {
        "customer": {"name": "Jamie Tan", "email": "jamie@example.com"},
        "items": [
            {"description": f"Sample service {index + 1}", "quantity": 1 + index % 3, "price": 12.5 + index}
            for index in range(line_count)
        ],
        "tax_rate": 8,
        "discount_rate": 5,
        "payment_method": "card",
        "notes": "Generated by the export smoke test.",
    }


def run_smoke_test(output_dir: Path, line_count: int, template: str) -> Path:
    """Store a profile and a receipt in memory, then download the PDF."""

    os.environ["RECEIPTPRO_USE_MEMORY_STORE"] = "true"
    get_settings.cache_clear()
    reset_store()

    with TestClient(app) as client:
        client.post("/profiles", json=SAMPLE_PROFILE).raise_for_status()
        response = client.post("/receipts", json={**_sample_receipt(line_count), "template": template})
        if response.status_code != 200:
            raise RuntimeError(f"Saving the receipt failed ({response.status_code}): {response.text}")
        receipt = response.json()

        pdf = client.get(f"/receipts/{receipt['id']}/pdf")
        if pdf.status_code != 200:
            raise RuntimeError(f"PDF export failed ({pdf.status_code}): {pdf.text}")

    filename = pdf.headers["content-disposition"].split("filename=")[-1].strip('"')
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / filename
    target.write_bytes(pdf.content)

    print(f"Receipt {receipt['receipt_number']} total {receipt['totals']['total']:.2f}")
    print(f"Pages: {pdf.headers['x-page-count']} (fallback: {pdf.headers['x-export-fallback']})")
    print(f"Saved {target}")
    return target


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Run a smoke test of the PDF export. A sample receipt is saved "
            "through the HTTP routes and its PDF is written to disk."
        )
    )
    parser.add_argument("--output-dir", type=Path, default=Path("./out"), help="Directory for the PDF.")
    parser.add_argument("--lines", type=int, default=40, help="Number of line items on the receipt.")
    parser.add_argument("--template", default="modern", help="Template id to render with.")

    args = parser.parse_args(argv)

    try:
        run_smoke_test(args.output_dir, args.lines, args.template)
    except Exception as exc:  # pragma: no cover - manual diagnostic utility
        print(f"Smoke test failed: {exc}", file=sys.stderr)
        return 1

    print("\nSmoke test completed successfully.")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual diagnostic utility
    raise SystemExit(main())
