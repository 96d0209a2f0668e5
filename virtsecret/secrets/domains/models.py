"""Domain models for libvirt secrets."""
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, Optional

import libvirt

USAGE_TYPES: Dict[str, int] = {
    "none": libvirt.VIR_SECRET_USAGE_TYPE_NONE,
    "volume": libvirt.VIR_SECRET_USAGE_TYPE_VOLUME,
    "ceph": libvirt.VIR_SECRET_USAGE_TYPE_CEPH,
    "iscsi": libvirt.VIR_SECRET_USAGE_TYPE_ISCSI,
    "tls": libvirt.VIR_SECRET_USAGE_TYPE_TLS,
    "vtpm": libvirt.VIR_SECRET_USAGE_TYPE_VTPM,
}

# Child element of <usage> that carries the usage id
_USAGE_ID_ELEMENTS = {
    "volume": "volume",
    "ceph": "name",
    "iscsi": "target",
    "tls": "name",
    "vtpm": "name",
}


def usage_type_name(code: int) -> str:
    """Name for a usage type code, e.g. 1 -> 'volume'."""
    for name, value in USAGE_TYPES.items():
        if value == code:
            return name
    return f"unknown({code})"


@dataclass
class SecretDefinition:
    """Fields of a libvirt <secret> document."""
    usage_type: str
    usage_id: Optional[str] = None
    uuid: Optional[str] = None
    description: Optional[str] = None
    ephemeral: bool = False
    private: bool = False

    def __post_init__(self):
        if self.usage_type not in USAGE_TYPES:
            raise ValueError(
                f"Unknown usage type '{self.usage_type}'. "
                f"Expected one of: {', '.join(USAGE_TYPES)}"
            )
        if self.usage_type != "none" and not self.usage_id:
            raise ValueError(f"Usage type '{self.usage_type}' requires a usage id")

    def to_xml(self) -> str:
        """Render the definition as libvirt secret XML."""
        root = ET.Element("secret", {
            "ephemeral": "yes" if self.ephemeral else "no",
            "private": "yes" if self.private else "no",
        })
        if self.uuid:
            ET.SubElement(root, "uuid").text = self.uuid
        if self.description:
            ET.SubElement(root, "description").text = self.description
        if self.usage_type != "none":
            usage = ET.SubElement(root, "usage", {"type": self.usage_type})
            ET.SubElement(usage, _USAGE_ID_ELEMENTS[self.usage_type]).text = self.usage_id
        return ET.tostring(root, encoding="unicode")


@dataclass(frozen=True)
class SecretInfo:
    """Summary of a secret as reported by libvirt."""
    uuid: str
    usage_type: int
    usage_id: Optional[str]

    @property
    def usage_type_name(self) -> str:
        return usage_type_name(self.usage_type)
