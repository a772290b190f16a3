"""Build a uProduce job ticket from the catalog and optionally submit it.

Usage:
    python fetch_ticket.py brochure-a A4
    python fetch_ticket.py brochure-a A4 --kind print --set eventDate=29/01/2026
    python fetch_ticket.py brochure-a A4 --submit

The ticket JSON goes to stdout, progress messages to stderr.
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config import Config
from core.exceptions import BrochureProxyError
from core.uproduce_client import UProduceClient
from models.job_ticket import JobKind, RecipientSource
from models.product import ProductCatalog
from modules.ticket_builder import build_ticket


def _parse_values(pairs):
    values = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise SystemExit(f"ERROR: --set expects name=value, got '{pair}'")
        values[name] = value
    return values


def main():
    """Build, print and optionally submit a job ticket."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("product_id")
    parser.add_argument("size")
    parser.add_argument("--kind", choices=["proof", "print"], default="proof")
    parser.add_argument("--set", dest="values", action="append", default=[],
                        metavar="NAME=VALUE", help="Field value (repeatable)")
    parser.add_argument("--products", default=Config.PRODUCTS_FILE)
    parser.add_argument("--submit", action="store_true",
                        help="Submit the ticket to uProduce and report the result")
    args = parser.parse_args()

    kind = JobKind.PROOF if args.kind == "proof" else JobKind.PRINT

    try:
        catalog = ProductCatalog.load(args.products)
        ticket = build_ticket(
            catalog,
            args.product_id,
            args.size,
            _parse_values(args.values),
            kind,
            recipient_source=RecipientSource(
                filter_type="TableName",
                filter=Config.PRINT_RECIPIENT_TABLE,
                source_id=Config.PRINT_RECIPIENT_SOURCE_ID,
            ),
        )
    except BrochureProxyError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(ticket.to_dict(), indent=2, ensure_ascii=False))

    if not args.submit:
        return

    if not Config.UPRODUCE_API_URL:
        print("ERROR: UPRODUCE_API_URL is not set", file=sys.stderr)
        sys.exit(1)

    print(f"Submitting to {Config.UPRODUCE_API_URL}...", file=sys.stderr)
    client = UProduceClient(
        base_url=Config.UPRODUCE_API_URL,
        username=Config.UPRODUCE_USERNAME,
        password=Config.UPRODUCE_PASSWORD,
        timeout_seconds=Config.REMOTE_TIMEOUT_SECONDS,
    )
    try:
        output = client.submit_and_fetch(ticket)
    except BrochureProxyError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        client.close()

    print(f"SUCCESS: job {output.job_id}, bundle {len(output.content)} bytes", file=sys.stderr)


if __name__ == "__main__":
    main()
