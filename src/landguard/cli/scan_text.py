"""Score listing text from the command line and print the scan result as JSON."""

from __future__ import annotations

import argparse
import json
import sys

from landguard.observability import configure_logging
from landguard.scoring.models import RiskLevel, StructuredFields
from landguard.services.scanning import ScanService


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Return CLI arguments describing the text and optional listing signals.

    Args:
        argv: Optional list of CLI arguments. When ``None``, defaults to ``sys.argv``.

    Returns:
        Parsed :class:`argparse.Namespace` containing CLI options.
    """

    parser = argparse.ArgumentParser(description="Scan listing text for scam indicators")
    parser.add_argument("text", nargs="?", help="Listing text; read from stdin when omitted", default=None)
    parser.add_argument("--price", type=float, help="Asking price", default=None)
    parser.add_argument("--images", type=int, help="Number of listing photos", default=None)
    parser.add_argument("--phone", help="Seller phone number", default=None)
    parser.add_argument("--email", help="Seller email address", default=None)
    parser.add_argument("--url", help="Listing URL", default=None)
    parser.add_argument("--top", type=int, help="Only print the first N flags", default=None)
    parser.add_argument("--compact", action="store_true", help="Print JSON on a single line")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Zero when the listing scores below ``high``, one otherwise.
    """

    args = parse_args(argv)
    configure_logging()
    text = args.text if args.text is not None else sys.stdin.read()
    structured = StructuredFields(
        price=args.price,
        image_count=args.images,
        phone=args.phone,
        email=args.email,
        url=args.url,
    )
    result = ScanService().scan_text(text, structured)
    payload = result.to_payload()
    if args.top is not None:
        payload["flags"] = payload["flags"][: max(args.top, 0)]
    print(json.dumps(payload, indent=None if args.compact else 2))
    return 1 if result.risk_level.rank >= RiskLevel.HIGH.rank else 0


if __name__ == "__main__":
    sys.exit(main())
