import enum
import typing
import pydantic
from pydantic import dataclasses


class SortOrder(enum.StrEnum):
    INPUT = "input"  # Default: order of the source datasets
    NAME = "name"
    ID = "id"


def _no_bool(v: typing.Any) -> typing.Any:
    # JSON true/false would otherwise pass as 1.0/0.0
    if isinstance(v, bool):
        raise ValueError("Input should be a number, not a boolean")
    return v


Identifier = typing.Annotated[int, pydantic.Strict()]
# numeric strings are accepted, as found in public states+cities.json dumps
Coordinate = typing.Annotated[float, pydantic.BeforeValidator(_no_bool)]


@dataclasses.dataclass(kw_only=True)
class Country:
    id: Identifier
    iso2: str = pydantic.Field(pattern=r"^[A-Za-z]{2}$")  # ISO-3166 alpha-2 code
    name: str
    extra: dict[str, typing.Any] = pydantic.Field(default_factory=dict)  # passthrough


@dataclasses.dataclass(kw_only=True)
class State:
    id: Identifier
    country_id: Identifier
    name: str
    extra: dict[str, typing.Any] = pydantic.Field(default_factory=dict)  # state_code...


@dataclasses.dataclass(kw_only=True)
class City:
    id: Identifier
    state_id: Identifier
    name: str
    latitude: Coordinate = pydantic.Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: Coordinate = pydantic.Field(ge=-180, le=180, allow_inf_nan=False)


@dataclasses.dataclass
class StateNode:
    state: State
    cities: list[City] = pydantic.Field(default_factory=list)


@dataclasses.dataclass
class CountryTree:
    """A country with its states, each carrying its cities.
    Built once per run, written to a single artifact, then discarded.
    """

    country: Country
    states: list[StateNode] = pydantic.Field(default_factory=list)

    @property
    def cities_count(self) -> int:
        return sum(len(s.cities) for s in self.states)
