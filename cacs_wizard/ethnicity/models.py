from dataclasses import dataclass

ASCVD_CATEGORIES: tuple[str, ...] = ("white", "african-american", "other")
MESA_CATEGORIES: tuple[str, ...] = ("white", "african-american", "chinese", "hispanic")

DEFAULT_ASCVD_CATEGORY = "other"
DEFAULT_MESA_CATEGORY = "white"


@dataclass(frozen=True)
class EthnicityTarget:
    """Categories one raw ethnicity value maps to, per risk model."""

    ascvd: str = DEFAULT_ASCVD_CATEGORY
    mesa: str = DEFAULT_MESA_CATEGORY

    @property
    def is_complete(self) -> bool:
        return self.ascvd in ASCVD_CATEGORIES and self.mesa in MESA_CATEGORIES

    def as_dict(self) -> dict[str, str]:
        return {"ascvd": self.ascvd, "mesa": self.mesa}


EthnicityMapping = dict[str, EthnicityTarget]
