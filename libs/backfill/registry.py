# =============================================================================
# Collection Registry
# =============================================================================
# Ordered, immutable set of collections the backfill targets, with named
# selection presets.
# =============================================================================

from typing import Iterable, Iterator, Optional

from libs.models import CollectionDescriptor

__all__ = ["CollectionRegistry", "DEFAULT_COLLECTIONS", "SELECTION_PRESETS", "default_registry"]


# (path, display name); every collection stores the branch in branchCode,
# falling back to the legacy "branch" field.
DEFAULT_COLLECTIONS: tuple[tuple[str, str], ...] = (
    # Sales
    ("sections/sales/vehicles", "Vehicle Sales"),
    ("sections/sales/bookings", "Vehicle Bookings"),
    ("sections/sales/partGroups", "Part Groups"),
    ("sections/sales/parts", "Parts"),
    ("sections/sales/saleItems", "Sale Items"),
    # Account
    ("sections/account/incomes", "Income Records"),
    ("sections/account/expenses", "Expense Records"),
    ("sections/account/incomeItems", "Income Items"),
    # Service
    ("sections/services/serviceOrders", "Service Orders"),
    ("sections/services/importServices", "Import Service"),
    ("sections/services/serviceClose", "Service Close"),
    ("sections/services/gasCost", "Gas Cost"),
    # Warehouse
    ("sections/stocks/importPartItems", "Import Part Items"),
    ("sections/stocks/importVehicles", "Import Vehicles"),
    ("sections/stocks/importVehicleItems", "Import Vehicle Items"),
    ("sections/stocks/peripherals", "Peripherals"),
    ("sections/stocks/purchasePlan", "Purchase Plan"),
    ("sections/stocks/saleOut", "Sale Out"),
    ("sections/stocks/saleOutItems", "Sale Out Items"),
    ("sections/stocks/transfer", "Transfer"),
    ("sections/stocks/transferItems", "Transfer Items"),
    ("sections/stocks/vehicles", "Vehicles"),
    # Customers
    ("data/sales/customers", "Customers"),
    ("data/sales/referrers", "Referrers"),
    ("data/sales/dealers", "Dealers"),
    # Credit
    ("sections/credits/credits", "Credits"),
    # HR
    ("sections/hr/importFingerPrint", "Import Finger Print"),
    ("sections/hr/importFingerPrintBatch", "Import Finger Print Batch"),
    ("sections/hr/leave", "Leave"),
    ("data/company/employees", "Employees"),
)

# Preset name → keywords matched case-insensitively against display names
SELECTION_PRESETS: dict[str, tuple[str, ...]] = {
    "accounting": ("income", "expense"),
    "sales": ("sale", "booking"),
    "inventory": ("stock", "part"),
}


class CollectionRegistry:
    """
    Registry of target collections in a fixed, deterministic order.

    Display names are unique; the registry order is the order in which
    collections are migrated and reported.
    """

    def __init__(self, collections: Iterable[CollectionDescriptor]) -> None:
        self._collections = tuple(collections)
        seen: set[str] = set()
        for collection in self._collections:
            if collection.name in seen:
                raise ValueError(f"Duplicate collection name in registry: '{collection.name}'")
            seen.add(collection.name)

    def __iter__(self) -> Iterator[CollectionDescriptor]:
        return iter(self._collections)

    def __len__(self) -> int:
        return len(self._collections)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self._collections]

    def get(self, name: str) -> Optional[CollectionDescriptor]:
        for collection in self._collections:
            if collection.name == name:
                return collection
        return None

    def select(self, names: Optional[Iterable[str]] = None) -> list[CollectionDescriptor]:
        """
        Return the registered collections named in `names`, in registry order.

        None selects every collection; unknown names are ignored.
        """
        if names is None:
            return list(self._collections)
        wanted = set(names)
        return [c for c in self._collections if c.name in wanted]

    def unknown_names(self, names: Iterable[str]) -> list[str]:
        known = set(self.names)
        return sorted(set(names) - known)

    def preset(self, preset_name: str) -> list[str]:
        """
        Collection names selected by a named preset.

        Raises:
            ValueError: If the preset is unknown
        """
        if preset_name not in SELECTION_PRESETS:
            raise ValueError(
                f"Unknown preset '{preset_name}'. Expected one of: {', '.join(SELECTION_PRESETS)}"
            )
        keywords = SELECTION_PRESETS[preset_name]
        return [
            c.name
            for c in self._collections
            if any(keyword in c.name.lower() for keyword in keywords)
        ]


def default_registry() -> CollectionRegistry:
    """The dealership collections that carry a branch code."""
    return CollectionRegistry(
        CollectionDescriptor(path=path, name=name) for path, name in DEFAULT_COLLECTIONS
    )
