from typing import Any, Iterable

from .errors import InvalidRequest, PayloadTooLarge
from .models import MAX_ASN, AsnRecord
from .store import Snapshot, SnapshotStore


def parse_asns(raw: str | None) -> list[int]:
    """Split a comma separated list, dropping tokens that are not u32 ASNs."""
    out: list[int] = []
    for tok in (raw or "").split(","):
        tok = tok.strip()
        if tok.startswith("+"):
            tok = tok[1:]
        if not (tok.isascii() and tok.isdigit()):
            continue
        asn = int(tok)
        if asn <= MAX_ASN:
            out.append(asn)
    return out


class LookupService:
    """Validates bulk lookups and renders them from a single snapshot."""

    def __init__(self, store: SnapshotStore, max_asns: int):
        self.store = store
        self.max_asns = max_asns

    def lookup_by_query(self, asns: str | None, legacy: bool = False):
        parsed = parse_asns(asns)
        if not parsed:
            raise InvalidRequest("no valid ASNs provided in 'asns' query parameter")
        return self._lookup(parsed, legacy)

    def lookup_by_body(self, asns: list[int], legacy: bool = False):
        if not asns:
            raise InvalidRequest("no ASNs provided in request body")
        return self._lookup(asns, legacy)

    def _lookup(self, asns: list[int], legacy: bool):
        if len(asns) > self.max_asns:
            raise PayloadTooLarge(self.max_asns)
        snap = self.store.get()
        found = find_records(snap, asns)
        if legacy:
            return [r.to_legacy() for r in found]
        return render_envelope(snap, found, page_size=len(asns))

    def health(self) -> dict[str, str]:
        snap = self.store.get()
        return {"status": "ok", "updatedAt": snap.updated_at_str}


def find_records(snap: Snapshot, asns: Iterable[int]) -> list[AsnRecord]:
    # request order, duplicates kept, misses dropped
    return [snap.records[a] for a in asns if a in snap.records]


def render_envelope(snap: Snapshot, found: list[AsnRecord], page_size: int) -> dict[str, Any]:
    return {
        "data": [r.to_dict() for r in found],
        "count": len(found),
        "updatedAt": snap.updated_at_str,
        "page": 0,
        "page_size": page_size,
    }
