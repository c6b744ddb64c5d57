"""Contact data models."""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class PhoneNumber:
    """A single phone number entry of a device contact."""
    number: str
    label: Optional[str] = None


@dataclass
class Contact:
    """Contact record as loaded from the device contact store."""
    id: str
    name: str
    phone_numbers: List[PhoneNumber] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Contact":
        """Build a contact from a stored or device record (camelCase accepted)."""
        raw_numbers = data.get("phone_numbers", data.get("phoneNumbers")) or []
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            phone_numbers=[
                PhoneNumber(number=p.get("number") or "", label=p.get("label"))
                for p in raw_numbers
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
