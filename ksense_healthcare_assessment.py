import argparse
import json
import logging
import sys

import requests

from ksense_assessment.alerts import build_alert_lists, score_patients
from ksense_assessment.client import DemoMedClient
from ksense_assessment.config import clamp_limit, load_settings
from ksense_assessment.errors import DemoMedError, IncompleteFetchError
from ksense_assessment.pagination import fetch_all_patients
from ksense_assessment.scoring import compute_patient_risk_details

logger = logging.getLogger("ksense_assessment")


def ensure_submittable(meta):
    if not meta.complete:
        raise IncompleteFetchError(meta)


def write_json(path, data):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def build_parser():
    p = argparse.ArgumentParser(description="Score DemoMed patients and build the assessment alert lists.")
    p.add_argument("limit_pos", nargs="?", type=int, metavar="LIMIT", help="page size (1-20)")
    p.add_argument("--api-key", "--apiKey", dest="api_key", help="overrides DEMOMED_API_KEY")
    p.add_argument("--base-url", "--baseUrl", dest="base_url", help="overrides DEMOMED_BASE_URL")
    p.add_argument("--limit", type=int, help="page size (1-20), overrides DEMOMED_LIMIT")
    p.add_argument("--out", default="alert-lists.json", help="where to write the alert lists")
    p.add_argument("--scored-out", help="also write per-patient scores and raw inputs")
    p.add_argument("--submit", action="store_true", help="POST the lists to /submit-assessment")
    p.add_argument(
        "--require-complete", "--verify", dest="require_complete", action="store_true",
        help="fail unless the fetch is known to be complete",
    )
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def describe(patients, meta):
    if meta.expected_total is not None:
        info = f"unique patient_ids: {meta.unique_patient_ids}/{meta.expected_total}"
    else:
        info = f"unique patient_ids: {meta.unique_patient_ids}"
    if meta.total_pages is not None:
        info += f", totalPages: {meta.total_pages}"
    info += f", complete: {'yes' if meta.complete else 'no'}"
    return f"Fetched {len(patients)} patient records ({info})."


def run(args, client=None, sleep=None):
    settings = load_settings()
    api_key = args.api_key or settings.api_key
    if not api_key:
        print("Missing API key. Set DEMOMED_API_KEY or pass --api-key.", file=sys.stderr)
        return 1

    base_url = (args.base_url or settings.base_url).rstrip("/")
    limit = args.limit or args.limit_pos or settings.limit
    client = client or DemoMedClient(
        base_url=base_url, api_key=api_key, timeout=settings.timeout, max_retries=settings.max_retries
    )

    print(f"Fetching patients from {base_url} ...")
    fetch_kwargs = {"sleep": sleep} if sleep is not None else {}
    result = fetch_all_patients(client, clamp_limit(limit), **fetch_kwargs)
    patients, meta = result.patients, result.meta
    print(describe(patients, meta))

    if meta.missing_pages:
        logger.warning("Some pages returned empty after retries: %s", ", ".join(map(str, meta.missing_pages)))

    if args.submit or args.require_complete:
        try:
            ensure_submittable(meta)
        except IncompleteFetchError as e:
            print(f"Refusing to submit: {e}" if args.submit else str(e), file=sys.stderr)
            return 1

    print("Scoring")
    results = build_alert_lists(score_patients(patients))
    write_json(args.out, results)
    print(f"Wrote {args.out}")
    print("Counts:", {k: len(v) for k, v in results.items()})

    if args.scored_out:
        details = [d for d in map(compute_patient_risk_details, patients) if d is not None]
        details.sort(key=lambda d: d.patient_id)
        write_json(args.scored_out, {"data": [d.to_dict() for d in details]})
        print(f"Wrote {args.scored_out}")

    if not args.submit:
        print("Run with --submit to POST results to /submit-assessment.")
        return 0

    print("Submitting")
    resp = client.submit_assessment(results)
    print("Server response:")
    print(json.dumps(resp, indent=2) if not isinstance(resp, str) else resp)
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    try:
        return run(args)
    except (DemoMedError, requests.RequestException) as e:
        logger.error("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
