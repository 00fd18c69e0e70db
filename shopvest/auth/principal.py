"""
Authenticated principal extracted from a verified bearer token
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass
class Principal:
    """Authenticated user principal"""
    subject: str  # JWT 'sub' claim, the user id
    email: Optional[str] = None
    name: Optional[str] = None
    roles: List[str] = None
    raw_claims: Dict[str, Any] = None

    def __post_init__(self):
        if self.roles is None:
            self.roles = []
        if self.raw_claims is None:
            self.raw_claims = {}

    def has_role(self, role: Role) -> bool:
        return role.value in self.roles
