#!/usr/bin/env python3
import sys
import os

print("Running preflight import check...")
try:
    # Set dummy env vars to avoid KeyErrors during config load if any
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

    import dispute_triage.main
    print("Import dispute_triage.main: OK")

    import dispute_triage.queue.jobs
    print("Import dispute_triage.queue.jobs: OK")

    import dispute_triage.portal.session
    print("Import dispute_triage.portal.session: OK")
except Exception as e:
    print(f"Preflight check FAILED: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)

# Credential expiry is advisory; an unreachable Redis only warns here.
try:
    from dispute_triage.store.credentials import list_expiring
    for c in list_expiring(days_threshold=7):
        print(f"[WARN] credential for {c['clientId']} ({c['username']}) expires in {c['daysLeft']} day(s)")
except Exception as e:
    print(f"[WARN] credential expiry check skipped: {e}")

print("Preflight check passed.")
sys.exit(0)
