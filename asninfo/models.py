from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

MAX_ASN = 2**32 - 1


def format_ts(dt: datetime) -> str:
    """RFC 3339 in UTC with millisecond precision, e.g. 2024-01-01T00:00:00.000Z."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class OrgRef:
    org_id: str
    org_name: str


@dataclass(frozen=True)
class AsnRecord:
    asn: int
    name: str
    country: str
    country_name: str = ""
    as2org: OrgRef | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)  # loader fields we do not model

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update({
            "asn": self.asn,
            "name": self.name,
            "country": self.country,
            "as2org": (
                {"org_id": self.as2org.org_id, "org_name": self.as2org.org_name}
                if self.as2org else None
            ),
            "country_name": self.country_name,
        })
        return out

    def to_legacy(self) -> dict[str, Any]:
        org_id = self.as2org.org_id if self.as2org else ""
        org_name = self.as2org.org_name if self.as2org else ""
        return {
            "asn": self.asn,
            "as_name": self.name,
            "org_id": org_id,
            "org_name": org_name,
            "country_code": self.country,
            "country_name": self.country_name,
            "data_source": "",
        }
