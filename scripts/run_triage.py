#!/usr/bin/env python3
"""
Run one triage pass in the foreground (no RQ worker needed).

    python scripts/run_triage.py [--client CLIENT] [--dry-run] [--notify]

Ctrl-C requests cancellation; the run stops at the next dispute boundary
so no portal action is left half-submitted.
"""
import argparse
import json
import signal
import sys
import threading

from dispute_triage.core.dry_run import build_dry_run_pipeline
from dispute_triage.core.notify import notify_run_summary
from dispute_triage.core.pipeline import TriagePipeline


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Triage pending disputes")
    p.add_argument("--client", default=None, help="only process this client's disputes")
    p.add_argument("--dry-run", action="store_true", help="use fixtures, touch nothing external")
    p.add_argument("--notify", action="store_true", help="post a run summary to the alert channel")
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    cancel = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: cancel.set())

    if args.dry_run:
        pipeline, _, _ = build_dry_run_pipeline(cancel=cancel)
    else:
        pipeline = TriagePipeline(cancel=cancel)

    report = pipeline.run(args.client)
    if args.notify and not args.dry_run:
        notify_run_summary(report, client_id=args.client)

    print(json.dumps(report.counts()))
    for f in report.client_failures:
        print(f"[WARN] {f['clientId']}: {f['reason']}")
    return 1 if report.client_failures else 0


if __name__ == "__main__":
    sys.exit(main())
