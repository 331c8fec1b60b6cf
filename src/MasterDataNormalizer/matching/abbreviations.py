"""Known short-forms that resolve directly to canonical labels."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional

_KEY_NOISE = re.compile(r"[\s.]+")

STATE_ABBREVIATIONS: Mapping[str, str] = {
    "up": "Uttar Pradesh",
    "uttarpradesh": "Uttar Pradesh",
    "uk": "Uttarakhand",
    "uttrakhand": "Uttarakhand",
    "tn": "Tamil Nadu",
    "tamilnadu": "Tamil Nadu",
    "dl": "Delhi",
    "dlh": "Delhi",
    "mh": "Maharashtra",
    "maharashtra": "Maharashtra",
    "gj": "Gujarat",
    "gujarat": "Gujarat",
    "rj": "Rajasthan",
    "rajasthan": "Rajasthan",
    "pb": "Punjab",
    "punjab": "Punjab",
    "hr": "Haryana",
    "haryana": "Haryana",
    "hp": "Himachal Pradesh",
    "himachalpradesh": "Himachal Pradesh",
    "jk": "Jammu and Kashmir",
    "j&k": "Jammu and Kashmir",
    "ka": "Karnataka",
    "karnataka": "Karnataka",
    "kl": "Kerala",
    "kerala": "Kerala",
    "ap": "Andhra Pradesh",
    "andhrapradesh": "Andhra Pradesh",
    "ts": "Telangana",
    "wb": "West Bengal",
    "westbengal": "West Bengal",
    "br": "Bihar",
    "bihar": "Bihar",
    "or": "Odisha",
    "odisha": "Odisha",
    "as": "Assam",
    "assam": "Assam",
    "mp": "Madhya Pradesh",
    "madhyapradesh": "Madhya Pradesh",
    "cg": "Chhattisgarh",
    "chhattisgarh": "Chhattisgarh",
    "jh": "Jharkhand",
    "jharkhand": "Jharkhand",
    "sk": "Sikkim",
    "sikkim": "Sikkim",
}

CITY_ALIASES: Mapping[str, str] = {
    "bombay": "Mumbai",
    "calcutta": "Kolkata",
    "madras": "Chennai",
    "bengaluru": "Bangalore",
    "newdelhi": "Delhi",
}


def normalize_key(text: str) -> str:
    """Fold a raw label into abbreviation-table key form."""

    return _KEY_NOISE.sub("", text.strip().lower())


@dataclass(frozen=True, slots=True)
class AbbreviationTable:
    """Authoritative short-form lookup consulted before fuzzy scoring."""

    entries: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "entries",
            {normalize_key(key): value for key, value in self.entries.items() if normalize_key(key)},
        )

    @classmethod
    def for_states(cls) -> "AbbreviationTable":
        return cls(STATE_ABBREVIATIONS)

    @classmethod
    def for_cities(cls) -> "AbbreviationTable":
        return cls(CITY_ALIASES)

    def lookup(self, raw_label: str) -> Optional[str]:
        """Return the canonical label for ``raw_label`` when it is a known short-form."""

        if not raw_label:
            return None
        return self.entries.get(normalize_key(raw_label))

    def __contains__(self, raw_label: object) -> bool:
        return isinstance(raw_label, str) and self.lookup(raw_label) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


__all__ = ["AbbreviationTable", "CITY_ALIASES", "STATE_ABBREVIATIONS", "normalize_key"]
