import asyncio
import json
import logging
import time
from datetime import datetime, timezone

import httpx

from .errors import LoaderFailure
from .models import MAX_ASN, AsnRecord, OrgRef

# Datasets skipped in simplified mode.
HEAVY_FIELDS = ("population", "hegemony", "peeringdb")


class AsnInfoLoader:
    """Fetches a complete ASN -> record mapping from the upstream dumps."""

    def __init__(
        self,
        source_url: str,
        countries_url: str,
        simplified: bool = False,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.source_url = source_url
        self.countries_url = countries_url
        self.simplified = simplified
        self._log = logging.getLogger(__name__)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    async def load(self) -> tuple[dict[int, AsnRecord], datetime]:
        t0 = time.time()
        self._log.info(
            "loading asn info data",
            extra={"event": "load.start", "extra_fields": {
                "source": self.source_url,
                "simplified": self.simplified,
            }},
        )
        try:
            asinfo_text = await self._fetch_text(self.source_url)
        except httpx.HTTPError as e:
            raise LoaderFailure(1, f"failed to load asn info data: {e!r}") from e
        try:
            countries_text = await self._fetch_text(self.countries_url)
        except httpx.HTTPError as e:
            raise LoaderFailure(2, f"failed to load countries: {e!r}") from e

        countries = self._parse_countries(countries_text)
        records, skipped = await asyncio.to_thread(self._parse_jsonl, asinfo_text, countries)
        if not records:
            raise LoaderFailure(3, "asn info dump contained no usable records")

        updated_at = datetime.now(timezone.utc)
        self._log.info(
            "asn info data loaded",
            extra={"event": "load.done", "extra_fields": {
                "records": len(records),
                "skipped": skipped,
                "countries": len(countries),
                "load_ms": int((time.time() - t0) * 1000),
            }},
        )
        return records, updated_at

    async def _fetch_text(self, url: str) -> str:
        r = await self._client.get(url)
        r.raise_for_status()
        return r.text

    def _parse_countries(self, text: str) -> dict[str, str]:
        """GeoNames countryInfo.txt: ISO code in column 0, name in column 4."""
        out: dict[str, str] = {}
        for line in text.splitlines():
            if not line or line.startswith("#"):
                continue
            cols = line.split("\t")
            if len(cols) < 5:
                continue
            out[cols[0].strip().upper()] = cols[4].strip()
        return out

    def _parse_jsonl(self, text: str, countries: dict[str, str]) -> tuple[dict[int, AsnRecord], int]:
        records: dict[int, AsnRecord] = {}
        skipped = 0
        for lineno, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                rec = self._parse_record(json.loads(line), countries)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                skipped += 1
                self._log.warning(
                    "skipping malformed asn info line",
                    extra={"event": "load.skip", "extra_fields": {"line": lineno, "error": repr(e)}},
                )
                continue
            records[rec.asn] = rec
        return records, skipped

    def _parse_record(self, obj: dict, countries: dict[str, str]) -> AsnRecord:
        obj = dict(obj)
        asn = obj.pop("asn")
        if isinstance(asn, bool) or not isinstance(asn, int) or not 0 <= asn <= MAX_ASN:
            raise ValueError(f"invalid asn {asn!r}")
        name = obj.pop("name", "") or ""
        country = obj.pop("country", "") or ""
        obj.pop("country_name", None)

        org = obj.pop("as2org", None)
        as2org = None
        if org:
            as2org = OrgRef(
                org_id=str(org.get("org_id") or ""),
                org_name=str(org.get("org_name") or ""),
            )

        if self.simplified:
            for k in HEAVY_FIELDS:
                obj.pop(k, None)

        return AsnRecord(
            asn=asn,
            name=str(name),
            country=str(country),
            country_name=countries.get(str(country).upper(), ""),
            as2org=as2org,
            extra=obj,
        )
