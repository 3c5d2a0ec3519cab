import argparse
import json
import sys

from transitledger.core.db import SessionLocal, init_db
from transitledger.core.logging import configure_logging_if_needed
from transitledger.jobs.audit.ledger_audit import run_ledger_audit


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Replay arrivals against route_day_agg and verify event hash chains")

    p.add_argument("--route", help="Optional route filter (e.g. R1)")
    p.add_argument("--from-date", type=int, help="Optional first service_date (e.g. 20240101)")
    p.add_argument("--to-date", type=int, help="Optional last service_date (e.g. 20240131)")
    p.add_argument("--skip-aggs", action="store_true", help="Do not replay route_day_agg")
    p.add_argument("--skip-chains", action="store_true", help="Do not verify ledger_events hash chains")

    args = p.parse_args(argv)

    configure_logging_if_needed()
    init_db()

    db = SessionLocal()
    try:
        result = run_ledger_audit(
            db,
            route=args.route,
            from_date=args.from_date,
            to_date=args.to_date,
            check_aggs=not args.skip_aggs,
            check_chains=not args.skip_chains,
        )
        print(json.dumps(result, indent=2, sort_keys=True))
        return 0 if result["ok"] else 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
