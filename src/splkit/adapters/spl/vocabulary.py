"""SPL namespaces, code systems and fixed codes."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Final

HL7_NS: Final = "urn:hl7-org:v3"
XSI_NS: Final = "http://www.w3.org/2001/XMLSchema-instance"

# HL7 is written as the default namespace, without a prefix
ET.register_namespace("", HL7_NS)
ET.register_namespace("xsi", XSI_NS)

# Code systems (OIDs)
LOINC: Final = "2.16.840.1.113883.6.1"
NDC: Final = "2.16.840.1.113883.6.69"
UNII: Final = "2.16.840.1.113883.4.9"
NCI_THESAURUS: Final = "2.16.840.1.113883.3.26.1.1"
DUNS: Final = "1.3.6.1.4.1.519.1"
FDA_APPLICATION: Final = "2.16.840.1.113883.3.150"
TERRITORY: Final = "2.16.840.1.113883.5.28"

# Issue codes on subjectOf/issue
INTERACTION_ISSUE: Final = "C54708"
CONTRAINDICATION_ISSUE: Final = "C54707"


def tag(name: str) -> str:
    """Qualified HL7 tag for ``name``."""
    return f"{{{HL7_NS}}}{name}"


XSI_TYPE: Final = f"{{{XSI_NS}}}type"
XSI_SCHEMA_LOCATION: Final = f"{{{XSI_NS}}}schemaLocation"
