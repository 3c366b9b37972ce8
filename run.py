#!/usr/bin/env python
"""Convenience script to analyze a saved market_chart JSON file.

Usage:
    python run.py BTC chart.json
"""

import argparse
import json

from trendlens.config import configure_logging
from trendlens.services.data_source import points_from_market_chart
from trendlens.tools.analysis import analyze_trend

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate a trading suggestion from a market_chart file")
    parser.add_argument("symbol", help="Asset symbol, e.g. BTC")
    parser.add_argument("chart", help="Path to a market_chart JSON payload")
    args = parser.parse_args()

    configure_logging()

    with open(args.chart) as f:
        payload = json.load(f)

    suggestion = analyze_trend(args.symbol.upper(), points_from_market_chart(payload))
    print(suggestion.model_dump_json(by_alias=True, indent=2))
