from typing import Iterable

from .models import Region
from .settings import AnalysisConfig, RendererSettings
from .validation import AnalysisInputError, UnknownRegionError

# (name, location) of the default capture catalog
DEFAULT_REGION_CATALOG = (
    ("us-east", "Virginia, USA"),
    ("us-west", "California, USA"),
    ("eu-west", "London, UK"),
    ("eu-central", "Frankfurt, Germany"),
    ("ap-southeast", "Singapore"),
)


class RegionRegistry:
    """
    Read-only catalog of capture regions.

    Lookup order is the catalog order, which is also the order of the
    default region set.
    """

    def __init__(self, regions: Iterable[Region]):
        self._regions: dict[str, Region] = {}
        for region in regions:
            if region.name in self._regions:
                raise AnalysisInputError(f"Duplicate region in catalog: {region.name}")
            self._regions[region.name] = region
        if not self._regions:
            raise AnalysisInputError("Region catalog is empty")

    def __contains__(self, name: str) -> bool:
        return name in self._regions

    def __len__(self) -> int:
        return len(self._regions)

    def names(self) -> tuple[str, ...]:
        return tuple(self._regions)

    def get(self, name: str) -> Region:
        try:
            return self._regions[name]
        except KeyError:
            raise UnknownRegionError(
                f"Unknown region {name!r}; available: {', '.join(self._regions)}"
            ) from None

    def resolve(self, names: Iterable[str] | None) -> list[Region]:
        """
        Turn a requested name list into regions.

        - None or empty - the whole catalog
        - duplicates are dropped, first occurrence wins
        - any unknown name fails before anything is dispatched
        """
        requested = list(dict.fromkeys(names or ()))
        if not requested:
            return list(self._regions.values())
        return [self.get(name) for name in requested]


def build_registry(settings: RendererSettings, config: AnalysisConfig | None = None) -> RegionRegistry:
    """
    Build the registry from the config override if present, otherwise the
    default catalog. Endpoints not given explicitly are derived from the
    renderer base address.
    """
    entries = config.regions if config and config.regions else None

    if entries is None:
        return RegionRegistry(
            Region(name=name, endpoint=settings.endpoint_for(name), location=location)
            for name, location in DEFAULT_REGION_CATALOG
        )

    regions = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("name"):
            raise AnalysisInputError(f"Region entry must be a mapping with a name, got {entry!r}")
        name = str(entry["name"])
        regions.append(
            Region(
                name=name,
                endpoint=str(entry.get("endpoint") or settings.endpoint_for(name)),
                location=str(entry.get("location") or name),
            )
        )
    return RegionRegistry(regions)
