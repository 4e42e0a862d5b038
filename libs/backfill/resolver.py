# =============================================================================
# Branch → Province Resolver
# =============================================================================
# Maps a dealership branch code to the province it belongs to.
# =============================================================================

from types import MappingProxyType
from typing import Mapping, Optional

__all__ = ["BRANCH_PROVINCE_MAP", "DEFAULT_PROVINCE", "BranchProvinceResolver"]

BRANCH_PROVINCE_MAP: Mapping[str, str] = MappingProxyType({
    # Nakhon Ratchasima
    "0450": "nakhon-ratchasima",
    "0451": "nakhon-ratchasima",
    "0452": "nakhon-ratchasima",
    "0453": "nakhon-ratchasima",
    "0454": "nakhon-ratchasima",
    "0455": "nakhon-ratchasima",
    "0456": "nakhon-ratchasima",
    "1004": "nakhon-ratchasima",
    "0500": "nakhon-ratchasima",
    # Legacy codes still present in old records
    "NMA002": "nakhon-ratchasima",
    "NMA003": "nakhon-ratchasima",
    # Nakhon Sawan
    "NSN001": "nakhon-sawan",
    "NSN002": "nakhon-sawan",
    "NSN003": "nakhon-sawan",
    # Warehouse branch is counted with the main province
    "1003": "nakhon-ratchasima",
})

DEFAULT_PROVINCE = "nakhon-ratchasima"


class BranchProvinceResolver:
    """
    Pure lookup from branch code to province id.

    Missing, empty and unmapped branch codes all resolve to the default
    province; resolution never raises.
    """

    def __init__(
        self,
        mapping: Optional[Mapping[str, str]] = None,
        default_province: str = DEFAULT_PROVINCE,
    ) -> None:
        if not default_province:
            raise ValueError("default_province must be a non-empty string")
        self._mapping = MappingProxyType(dict(BRANCH_PROVINCE_MAP if mapping is None else mapping))
        self._default = default_province

    @property
    def default_province(self) -> str:
        return self._default

    @property
    def mapping(self) -> Mapping[str, str]:
        return self._mapping

    def resolve(self, branch_code: Optional[str]) -> str:
        if not branch_code:
            return self._default
        return self._mapping.get(branch_code, self._default)

    def __call__(self, branch_code: Optional[str]) -> str:
        return self.resolve(branch_code)
