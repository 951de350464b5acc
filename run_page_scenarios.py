#!/usr/bin/env python3
"""Replay a few synthetic page sessions and compare their scores."""

import os
import sys
from datetime import datetime

import pandas as pd

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from perftelemetry.observation import PerformanceEntry
from perftelemetry.orchestration import TelemetryContext

OUTPUT_DIR = "experiments/results/page_scenarios"

# name -> (fcp ms, lcp ms, cls, api ms, uncaught errors)
SCENARIOS = {
    "fast_page": (900, 1800, 0.02, 150, 0),
    "slow_paint": (4200, 5200, 0.05, 200, 0),
    "layout_jank": (1200, 2500, 0.4, 250, 0),
    "slow_api": (1100, 2300, 0.03, 1800, 0),
    "error_storm": (1000, 2000, 0.01, 180, 6),
}


def run_scenario(name, fcp, lcp, cls, api_ms, errors):
    """Run one page session on a virtual clock."""
    print(f"\n{'='*60}")
    print(f"Scenario: {name}")
    print(f"{'='*60}")

    ctx = TelemetryContext({
        "page": {"url": f"https://demo.example.com/{name}"},
        "clock": {"realtime": False},
    })

    try:
        ctx.adapter.ingest(PerformanceEntry("paint", "first-contentful-paint", fcp))
        ctx.adapter.ingest(PerformanceEntry("largest-contentful-paint", start_time=lcp))
        ctx.adapter.ingest(PerformanceEntry("layout-shift", value=cls))
        ctx.adapter.ingest(PerformanceEntry("navigation", ctx.report_generator.url, 0,
                                            request_start=5, response_start=120, load_event_end=lcp + 200))

        ctx.recorder.start_api_call("/api/session")
        ctx.environment.advance(api_ms)
        ctx.recorder.end_api_call("/api/session", status_code=200)

        for i in range(errors):
            ctx.error_log.record(f"TypeError: demo failure {i}")

        engine = ctx.score_engine
        print(f"Score: {engine.get_performance_score()} ({engine.get_performance_grade()})")
        for recommendation in engine.get_recommendations():
            print(f"  - {recommendation}")

        ctx.report_generator.write_export(os.path.join(OUTPUT_DIR, name))
        return {
            "Scenario": name,
            "Score": engine.get_performance_score(),
            "Grade": engine.get_performance_grade(),
            "Health": engine.get_health_status(),
            "FCP (ms)": fcp,
            "LCP (ms)": lcp,
            "CLS": cls,
            "API (ms)": api_ms,
            "Errors": errors,
        }
    finally:
        ctx.shutdown()


def main():
    """Run every scenario and print a comparison table."""
    print("Page Scenario Comparison")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    os.makedirs(OUTPUT_DIR, exist_ok=True)
    rows = [run_scenario(name, *params) for name, params in SCENARIOS.items()]

    df = pd.DataFrame(rows).sort_values("Score", ascending=False)
    print("\n" + "="*80)
    print("COMPARISON SUMMARY")
    print("="*80)
    print(df.to_string(index=False))

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    csv_file = os.path.join(OUTPUT_DIR, f"comparison_{timestamp}.csv")
    df.to_csv(csv_file, index=False)
    print(f"\nResults saved to: {csv_file}")


if __name__ == "__main__":
    main()
