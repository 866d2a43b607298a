#!/usr/bin/env python3
"""
Demo Runner Script

Drives a running LLM Metrics Service and reports what it recorded.

This script:
1. Checks the service health endpoint
2. Triggers the demo batch generator
3. Optionally sends individual completions for each priced model
4. Prints the metrics summary and cost breakdown

Usage:
    python scripts/run_demo.py                          # 10 demo requests
    python scripts/run_demo.py --count 50 --errors      # Include forced failures
    python scripts/run_demo.py --per-model 3            # Also hit each model directly
    python scripts/run_demo.py --summary-only           # Just print the reports
"""

import argparse
import sys
import time

import httpx

DEFAULT_BASE_URL = "http://localhost:8080"


def check_health(client: httpx.Client) -> bool:
    """Print component health; return whether the service is healthy."""
    response = client.get("/health")
    response.raise_for_status()
    health = response.json()

    print(f"\nService: {health['service']} v{health['version']} ({health['status']})")
    for component in health["components"]:
        latency = component.get("latency_ms")
        latency_text = f" {latency:.1f}ms" if latency is not None else ""
        print(f"  {component['name']:<10} {component['status']}{latency_text}")

    return health["status"] == "healthy"


def run_demo_batch(client: httpx.Client, count: int, include_errors: bool) -> dict:
    """Trigger the demo generator and print the preview."""
    print(f"\nGenerating {count} demo requests (errors: {'on' if include_errors else 'off'})...")
    start = time.time()
    response = client.post(
        "/demo/generate",
        json={"count": count, "includeErrors": include_errors},
    )
    response.raise_for_status()
    body = response.json()

    print(f"{body['message']} in {time.time() - start:.1f}s")
    for result in body["results"]:
        metrics = result["metrics"]
        print(
            f"  {result['status']:<8} {result['model']:<15} "
            f"tokens={metrics['totalTokens']:<5} "
            f"ttft={metrics['timeToFirstToken']:.2f}s "
            f"cost=${metrics['cost']:.6f}"
        )
    return body


def run_per_model(client: httpx.Client, per_model: int) -> None:
    """Send completions directly for every registered model."""
    models = [m["model_id"] for m in client.get("/models").json()["models"]]

    print(f"\nSending {per_model} completion(s) per model...")
    for model in models:
        for i in range(per_model):
            response = client.post(
                "/completions",
                json={
                    "prompt": f"Summarize the benefits of {model} in one paragraph ({i + 1})",
                    "model": model,
                    "userId": "demo-cli",
                },
            )
            response.raise_for_status()
            result = response.json()
            print(
                f"  {model:<15} {result['status']:<8} "
                f"{result['metrics']['tokensPerSecond']:.1f} tok/s "
                f"${result['metrics']['cost']:.6f}"
            )


def print_report(client: httpx.Client, time_range: str, group_by: str) -> None:
    """Print the metrics summary and cost breakdown."""
    summary_response = client.get("/metrics/summary", params={"timeRange": time_range})
    summary_response.raise_for_status()
    summary = summary_response.json()

    costs_response = client.get(
        "/metrics/costs", params={"timeRange": time_range, "groupBy": group_by}
    )
    costs_response.raise_for_status()
    costs = costs_response.json()

    print("\n" + "=" * 60)
    print(f"METRICS SUMMARY (last {time_range})")
    print("=" * 60)
    print(f"  Total requests:      {summary['totalRequests']}")
    print(f"  Success rate:        {summary['successRate']:.1%}")
    print(f"  Errors:              {summary['errorCount']}")
    print(f"  Avg TTFT:            {summary['avgTimeToFirstToken']:.3f}s")
    print(f"  Avg tokens/second:   {summary['avgTokensPerSecond']:.1f}")
    print(f"  Avg duration:        {summary['avgTotalDuration']:.3f}s")
    print(f"  Avg tokens/request:  {summary['avgTokensPerRequest']:.1f}")
    print(f"  Total cost:          ${summary['totalCost']:.6f}")

    print(f"\nCost by {group_by}:")
    if not costs:
        print("  (no successful requests in range)")
    print(f"  {'Bucket':<26} {'Model':<15} {'Requests':>8} {'Cost':>12}")
    for row in costs:
        print(
            f"  {row['timestamp']:<26} {row['model']:<15} "
            f"{row['requestCount']:>8} ${row['totalCost']:>11.6f}"
        )
    print("\n" + "=" * 60)


def main():
    """Main entry point for the demo runner."""

    parser = argparse.ArgumentParser(
        description="Generate demo traffic against a running LLM Metrics Service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_demo.py                      10 demo requests
  python scripts/run_demo.py --count 100 --errors With forced failures
  python scripts/run_demo.py --summary-only       Reports only
        """
    )

    parser.add_argument(
        "--url",
        default=DEFAULT_BASE_URL,
        help=f"Service base URL (default: {DEFAULT_BASE_URL})"
    )
    parser.add_argument(
        "--count", "-n",
        type=int,
        default=10,
        help="Number of demo requests (1-1000)"
    )
    parser.add_argument(
        "--errors",
        action="store_true",
        help="Force a fraction of demo requests to fail"
    )
    parser.add_argument(
        "--per-model",
        type=int,
        default=0,
        help="Also send N direct completions per registered model"
    )
    parser.add_argument(
        "--time-range",
        default="1h",
        choices=["1h", "6h", "12h", "24h", "7d", "30d"],
        help="Window for the summary and cost reports"
    )
    parser.add_argument(
        "--group-by",
        default="hour",
        choices=["hour", "day"],
        help="Cost breakdown bucket size"
    )
    parser.add_argument(
        "--summary-only",
        action="store_true",
        help="Skip traffic generation and only print reports"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=600.0,
        help="HTTP timeout in seconds"
    )

    args = parser.parse_args()

    if not 1 <= args.count <= 1000:
        parser.error("--count must be between 1 and 1000")

    print("=" * 60)
    print("LLM Metrics Demo Runner")
    print("=" * 60)

    try:
        with httpx.Client(base_url=args.url, timeout=args.timeout) as client:
            if not check_health(client):
                print("\nWARNING: service is not fully healthy")

            if not args.summary_only:
                run_demo_batch(client, args.count, args.errors)
                if args.per_model > 0:
                    run_per_model(client, args.per_model)

            print_report(client, args.time_range, args.group_by)
    except httpx.HTTPStatusError as e:
        print(f"ERROR: {e.request.method} {e.request.url} returned {e.response.status_code}")
        print(f"  {e.response.text}")
        sys.exit(1)
    except httpx.HTTPError as e:
        print(f"ERROR: Could not reach service at {args.url}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
