from dataclasses import dataclass
import re

_COMPACT_ID_RE = re.compile(r"^[0-9a-f]{32}$")


@dataclass(frozen=True)
class PageId:
    """
    Value Object representing a Notion page ID in compact form.
    Accepts dashed UUIDs and stores them without hyphens.
    """
    value: str

    def __post_init__(self):
        compact = self.value.strip().replace("-", "").lower()
        if not _COMPACT_ID_RE.match(compact):
            raise ValueError(f"Invalid Notion page ID: {self.value!r}")
        object.__setattr__(self, "value", compact)

    @property
    def dashed(self) -> str:
        v = self.value
        return f"{v[:8]}-{v[8:12]}-{v[12:16]}-{v[16:20]}-{v[20:]}"

    def __str__(self):
        return self.value
