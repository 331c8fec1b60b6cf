"""Canonical label sets and their per-category provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

INDIAN_STATES: tuple[str, ...] = (
    "Andhra Pradesh",
    "Arunachal Pradesh",
    "Assam",
    "Bihar",
    "Chhattisgarh",
    "Goa",
    "Gujarat",
    "Haryana",
    "Himachal Pradesh",
    "Jharkhand",
    "Karnataka",
    "Kerala",
    "Madhya Pradesh",
    "Maharashtra",
    "Manipur",
    "Meghalaya",
    "Mizoram",
    "Nagaland",
    "Odisha",
    "Punjab",
    "Rajasthan",
    "Sikkim",
    "Tamil Nadu",
    "Telangana",
    "Tripura",
    "Uttar Pradesh",
    "Uttarakhand",
    "West Bengal",
    "Andaman and Nicobar Islands",
    "Chandigarh",
    "Dadra and Nagar Haveli and Daman and Diu",
    "Delhi",
    "Jammu and Kashmir",
    "Ladakh",
    "Lakshadweep",
    "Puducherry",
)

INDIAN_CITIES: tuple[str, ...] = (
    "Mumbai",
    "Delhi",
    "Bangalore",
    "Hyderabad",
    "Ahmedabad",
    "Chennai",
    "Kolkata",
    "Surat",
    "Pune",
    "Jaipur",
    "Lucknow",
    "Kanpur",
    "Nagpur",
    "Indore",
    "Thane",
    "Bhopal",
    "Visakhapatnam",
    "Pimpri-Chinchwad",
    "Patna",
    "Vadodara",
    "Ghaziabad",
    "Ludhiana",
    "Agra",
    "Nashik",
    "Faridabad",
    "Meerut",
    "Rajkot",
    "Kalyan-Dombivali",
    "Vasai-Virar",
    "Varanasi",
    "Srinagar",
    "Dhanbad",
    "Jodhpur",
    "Coimbatore",
    "Kochi",
    "Kozhikode",
    "Thrissur",
    "Guwahati",
    "Amritsar",
    "Vijayawada",
    "Madurai",
    "Navi Mumbai",
    "Allahabad",
    "Ranchi",
    "Gwalior",
    "Jabalpur",
    "Tiruchirappalli",
    "Raipur",
    "Kota",
    "Chandigarh",
    "Hubli-Dharwad",
    "Mysore",
    "Tirupur",
)


@dataclass(frozen=True, slots=True)
class CanonicalSet:
    """Ordered, de-duplicated set of approved labels for one category."""

    name: str
    labels: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", tuple(dict.fromkeys(label for label in self.labels if label)))

    @classmethod
    def from_labels(cls, name: str, labels: Iterable[str]) -> "CanonicalSet":
        return cls(name=name, labels=tuple(labels))

    def __contains__(self, label: object) -> bool:
        return label in self.labels

    def __iter__(self) -> Iterator[str]:
        return iter(self.labels)

    def __len__(self) -> int:
        return len(self.labels)


class CanonicalSetProvider:
    """Static lookup of canonical sets keyed by category name."""

    def __init__(self, sets: Mapping[str, CanonicalSet] | None = None) -> None:
        self._sets: dict[str, CanonicalSet] = dict(sets or {})

    @classmethod
    def default(cls) -> "CanonicalSetProvider":
        return cls(
            {
                "state": CanonicalSet("state", INDIAN_STATES),
                "city": CanonicalSet("city", INDIAN_CITIES),
            }
        )

    def get(self, category: str) -> CanonicalSet:
        """Return the canonical set for ``category``."""

        try:
            return self._sets[category]
        except KeyError as exc:
            raise KeyError(f"No canonical set registered for category {category!r}") from exc

    def categories(self) -> tuple[str, ...]:
        return tuple(self._sets)


__all__ = ["CanonicalSet", "CanonicalSetProvider", "INDIAN_CITIES", "INDIAN_STATES"]
