from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any
import urllib.request
import urllib.error


DEFAULT_BASE_URL = os.getenv("NIDO_BASE_URL", "http://localhost:8000")
DEFAULT_CRON_SECRET = os.getenv("CRON_SECRET", "")

DEFAULT_TIMEOUT_SECONDS = 120

JOBS = {
    "expire-verifications": "/v1/jobs/expire-verifications",
    "send-notifications": "/v1/jobs/send-notifications",
}


def http_post(url: str, cron_secret: str) -> tuple[int, dict[str, Any]]:
    headers = {"Content-Type": "application/json"}
    if cron_secret:
        headers["Authorization"] = f"Bearer {cron_secret}"
    req = urllib.request.Request(url=url, data=b"{}", method="POST", headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=DEFAULT_TIMEOUT_SECONDS) as resp:
            raw = resp.read().decode("utf-8")
            return resp.status, (json.loads(raw) if raw else {})
    except urllib.error.HTTPError as e:
        body = ""
        try:
            body = e.read().decode("utf-8")
        except Exception:
            body = ""
        print(f"HTTP {e.code} {e.reason} for {url}", file=sys.stderr)
        if body:
            print(body, file=sys.stderr)
        return e.code, {"error": {"status": e.code, "reason": e.reason, "body": body}}
    except urllib.error.URLError as e:
        print(f"Network error for {url}: {e}", file=sys.stderr)
        return 0, {"error": {"reason": str(e)}}


def main() -> int:
    p = argparse.ArgumentParser(description="Trigger a Nido periodic job by hand.")
    p.add_argument("job", choices=sorted(JOBS), help="job to run")
    p.add_argument("--base-url", default=DEFAULT_BASE_URL)
    p.add_argument("--cron-secret", default=DEFAULT_CRON_SECRET)
    args = p.parse_args()

    url = f"{args.base_url.rstrip('/')}{JOBS[args.job]}"
    status, resp = http_post(url, args.cron_secret)
    print(json.dumps(resp, indent=2, ensure_ascii=False))
    return 0 if 200 <= status < 300 and resp.get("success", False) else 1


if __name__ == "__main__":
    raise SystemExit(main())
