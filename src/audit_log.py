import json
import time
import os
from typing import Iterator, Optional

LOG = "audit.jsonl"

def append(entry: dict, path: Optional[str] = None) -> dict:
    record = dict(entry)
    record["ts_ns"] = time.time_ns()
    # Serialize with minimal separators to be byte-dense and JSONL format
    entry_line = json.dumps(record, separators=(",", ":")) + "\n"

    with open(path or LOG, "a", buffering=1) as f:
        f.write(entry_line)
        f.flush()
        os.fsync(f.fileno())
    return record

def read(path: Optional[str] = None) -> Iterator[dict]:
    with open(path or LOG) as f:
        for line in f:
            if line.strip():
                yield json.loads(line)

def record_signed(signed, endpoint: str, path: Optional[str] = None) -> dict:
    """Audit entry for a signed forward request; never contains key material."""
    req = signed.forward_request
    return append({
        "event": "forward_request_signed",
        "endpoint": endpoint,
        "digest": signed.digest.hex(),
        "r": signed.signature.r.hex(),
        "s": signed.signature.s.hex(),
        "v": signed.signature.v,
        "payload": signed.to_payload(),
        "nonce": str(req.nonce),
    }, path)
