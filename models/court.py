from dataclasses import dataclass, field
from typing import Dict


@dataclass
class Court:
    id: str
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)  # e.g. {"surface": "clay"}
