#!/usr/bin/env python3
"""
Third-Party Analysis Script
Runs the third-party analyzer against a saved HTML file or a live URL

Usage:
    python scripts/analyze_page.py page.html [--url https://example.com] [--legacy]
    python scripts/analyze_page.py https://example.com

Example:
    python scripts/analyze_page.py https://example.com --legacy
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from third_party_audit.features.third_party.schemas.options import AnalyzerOptions
from third_party_audit.features.third_party.services.orchestrator import ThirdPartyAnalyzer
from third_party_audit.features.third_party.services.page_loader import PageLoader
from third_party_audit.platform.config import settings
from third_party_audit.platform.exceptions import PageLoadError


def load_document(source: str, page_url: str = None):
    if source.startswith(("http://", "https://")):
        return PageLoader.load_document(source), source
    return Path(source).read_text(encoding="utf-8"), page_url


async def run(source: str, page_url: str, legacy: bool) -> int:
    try:
        document, page_url = load_document(source, page_url)
    except (OSError, PageLoadError) as e:
        print(f"❌ Could not load {source}: {e}", file=sys.stderr)
        return 1

    options = AnalyzerOptions.from_settings(settings).model_copy(update={"enable_legacy_view": legacy})
    result = await ThirdPartyAnalyzer(options).analyze(document, {"url": page_url})

    output = result.get("legacy") if legacy and result["success"] else result
    print(json.dumps(output, indent=2, default=str))
    return 0 if result["success"] else 2


def main():
    parser = argparse.ArgumentParser(description="Analyze the third-party resources of a page")
    parser.add_argument("source", help="Path to an HTML file or an http(s) URL")
    parser.add_argument("--url", help="Page origin used to resolve relative URLs when reading a file")
    parser.add_argument("--legacy", action="store_true", help="Print only the legacy result shape")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.source, args.url, args.legacy)))


if __name__ == "__main__":
    main()
