"""
Seed pending disputes (and optionally a portal credential) into Redis for
local/dev runs. Disputes are upserted by (client, control number), so
re-running the script does not duplicate cases or reset their outcome.

    python scripts/seed_disputes.py [disputes.json]

The JSON file holds a list of objects with the Dispute field names. Without
one, the dry-run sample disputes are written.
"""
import json
import os
import sys

from dispute_triage.core.dry_run import SAMPLE_DISPUTES
from dispute_triage.store.credentials import put_credential
from dispute_triage.store.dispute_repo import upsert_dispute
from dispute_triage.store.models import Credential, Dispute

SEED_USERNAME = os.getenv("SEED_PORTAL_USERNAME", "")
SEED_SECRET = os.getenv("SEED_PORTAL_SECRET", "")


def load_disputes(path=None):
    if not path:
        return [Dispute(**d.to_dict()) for d in SAMPLE_DISPUTES]
    with open(path, "r", encoding="utf-8") as f:
        rows = json.load(f)
    return [Dispute(**row) for row in rows]


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    disputes = load_disputes(argv[0] if argv else None)
    for d in disputes:
        assert d.client_id and d.control_number, f"bad entry: {d.id}"
        upsert_dispute(d)
    print(f"OK: upserted {len(disputes)} disputes")

    if SEED_USERNAME and SEED_SECRET:
        for client_id in sorted({d.client_id for d in disputes}):
            put_credential(Credential(client_id=client_id, username=SEED_USERNAME, secret=SEED_SECRET))
            print(f"OK: wrote credential for {client_id}")


if __name__ == "__main__":
    main()
