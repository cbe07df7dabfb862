import argparse
import sys
from typing import Optional

import requests


def check_backend_health(backend_url: str, timeout: float = 3.0) -> None:
    """
    Call GET {backend_url}/health and fail if it's not OK.
    """
    health_url = f"{backend_url.rstrip('/')}/health"
    try:
        resp = requests.get(health_url, timeout=timeout)
    except requests.RequestException as e:
        print(f"[ERROR] Could not reach backend at {health_url}: {e}", file=sys.stderr)
        sys.exit(1)

    if resp.status_code != 200:
        print(f"[ERROR] Backend health check failed ({resp.status_code}): {resp.text}", file=sys.stderr)
        sys.exit(1)


def upload_version(
    backend_url: str,
    entity_type: str,
    entity_id: str,
    name: str,
    location: str,
    file_type: Optional[str] = None,
    description: Optional[str] = None,
    created_by: Optional[str] = None,
    timeout: float = 10.0,
) -> dict:
    """
    POST /files/upload to record an already-stored object as a new file
    version. Returns the decoded response body.
    """
    url = f"{backend_url.rstrip('/')}/files/upload"
    payload = {
        "entity_type": entity_type,
        "entity_id": entity_id,
        "original_name": name,
        "location": location,
        "file_type": file_type,
        "description": description,
        "created_by": created_by,
    }

    try:
        resp = requests.post(url, json=payload, timeout=timeout)
    except requests.RequestException as e:
        print(f"[ERROR] Upload request failed: {e}", file=sys.stderr)
        sys.exit(1)

    if resp.status_code != 200:
        print(f"[ERROR] Failed to record version ({resp.status_code}): {resp.text}", file=sys.stderr)
        sys.exit(1)

    return resp.json()


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Record a stored object as a new version of an entity's file."
    )
    parser.add_argument(
        "--backend-url",
        default="http://localhost:8000",
        help="Base URL of the versioning API (default: http://localhost:8000)",
    )
    parser.add_argument("--entity-type", required=True, help="Owner kind, e.g. employee, department, task.")
    parser.add_argument("--entity-id", required=True, help="Owner id.")
    parser.add_argument("--name", required=True, help="Display name of the file, e.g. report.pdf.")
    parser.add_argument("--location", required=True, help="URL or object key where the bytes live.")
    parser.add_argument("--file-type", default=None, help="Optional classification (default: document).")
    parser.add_argument("--description", default=None, help="Optional version description.")
    parser.add_argument("--created-by", default=None, help="Optional uploader id.")

    args = parser.parse_args(argv)

    check_backend_health(args.backend_url)

    result = upload_version(
        backend_url=args.backend_url,
        entity_type=args.entity_type,
        entity_id=args.entity_id,
        name=args.name,
        location=args.location,
        file_type=args.file_type,
        description=args.description,
        created_by=args.created_by,
    )

    print(f"[OK] {result['message']}")
    print(f"file_id={result['file_id']} version_id={result['version_id']} version={result['version_number']}")


if __name__ == "__main__":
    main()


#Script run command
# python upload_version.py \
#   --backend-url http://localhost:8000 \
#   --entity-type task \
#   --entity-id T1 \
#   --name report.pdf \
#   --location s3://bucket/files/report.pdf
