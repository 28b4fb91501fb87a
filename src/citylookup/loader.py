import dataclasses
import logging
import orjson
import pathlib
import pydantic
import typing

from . import errors
from . import models


MAX_FILE_SIZE = 100 * 1024 * 1024
COUNTRIES_FILE = "countries.json"
STATES_FILE = "states+cities.json"

LOG = logging.getLogger()

RecordType = typing.TypeVar("RecordType", models.Country, models.State, models.City)

# nested arrays added on output, never passed through
RESERVED = {"states", "cities"}


def _validation_message(err: pydantic.ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in e['loc']) or 'record'}: {e['msg']}"
        for e in err.errors()
    )


def _record(
    cls: type[RecordType], collection: str, index: int, data: typing.Any, **kwargs
) -> RecordType:
    """Validate a decoded JSON object into a record.
    Unknown fields go to the record `extra` passthrough when it has one.
    """
    if not isinstance(data, dict):
        raise errors.SchemaError(collection, index, "expected an object")
    fields = {f.name for f in dataclasses.fields(cls)}
    values = {k: v for k, v in data.items() if k in fields and k != "extra"}
    if "extra" in fields:
        values["extra"] = {
            k: v for k, v in data.items() if k not in fields and k not in RESERVED
        }
    values.update(kwargs)
    try:
        return cls(**values)
    except pydantic.ValidationError as err:
        raise errors.SchemaError(collection, index, _validation_message(err))


def _check_unique(
    collection: str, records: list, key: typing.Callable[[typing.Any], typing.Any]
) -> None:
    seen = set()
    for index, record in enumerate(records):
        value = key(record)
        if value in seen:
            raise errors.SchemaError(collection, index, f"duplicate identity {value}")
        seen.add(value)


def decode(data: bytes, source: str) -> typing.Any:
    try:
        return orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise errors.DecodeError(source, str(err))


def parse_countries(raw: typing.Any) -> list[models.Country]:
    if not isinstance(raw, list):
        raise errors.SchemaError("countries", None, "expected an array")
    countries = [
        _record(models.Country, "countries", i, data) for i, data in enumerate(raw)
    ]
    _check_unique("countries", countries, lambda c: c.id)
    _check_unique("countries", countries, lambda c: c.iso2.upper())
    return countries


def parse_states(raw: typing.Any) -> tuple[list[models.State], list[models.City]]:
    """Parse the states and cities dataset.

    Two layouts are accepted, and can be combined:
    - an array of states, each state listing its cities in a nested "cities" array
      (the cities' state_id is their parent state id)
    - an object with separate "states" and "cities" arrays, cities referencing
      their state with a state_id field
    """
    if isinstance(raw, list):
        raw_states, raw_cities = raw, []
    elif isinstance(raw, dict):
        if "states" not in raw:
            raise errors.SchemaError("states", None, "missing states array")
        raw_states, raw_cities = raw["states"], raw.get("cities", [])
    else:
        raise errors.SchemaError("states", None, "expected an array or an object")
    if not isinstance(raw_states, list):
        raise errors.SchemaError("states", None, "expected an array")
    if not isinstance(raw_cities, list):
        raise errors.SchemaError("cities", None, "expected an array")
    states, cities = [], []
    for i, data in enumerate(raw_states):
        state = _record(models.State, "states", i, data)
        states.append(state)
        nested = data.get("cities") or []
        if not isinstance(nested, list):
            raise errors.SchemaError("states", i, "cities: expected an array")
        for city in nested:
            cities.append(
                _record(models.City, "cities", len(cities), city, state_id=state.id)
            )
    for data in raw_cities:
        cities.append(_record(models.City, "cities", len(cities), data))
    _check_unique("states", states, lambda s: s.id)
    _check_unique("cities", cities, lambda c: c.id)
    return states, cities


def read(path: pathlib.Path, max_size: int = MAX_FILE_SIZE) -> bytes:
    try:
        size = path.stat().st_size
        if size > max_size:
            raise errors.InputTooLarge(str(path), size, max_size)
        return path.read_bytes()
    except OSError as err:
        raise errors.DecodeError(str(path), err.strerror or str(err))


def load_countries(
    path: pathlib.Path, max_size: int = MAX_FILE_SIZE
) -> list[models.Country]:
    LOG.info("Loading countries from %s", path)
    countries = parse_countries(decode(read(path, max_size), str(path)))
    LOG.info("Loaded %s countries", len(countries))
    return countries


def load_states(
    path: pathlib.Path, max_size: int = MAX_FILE_SIZE
) -> tuple[list[models.State], list[models.City]]:
    LOG.info("Loading states and cities from %s", path)
    states, cities = parse_states(decode(read(path, max_size), str(path)))
    LOG.info("Loaded %s states, %s cities", len(states), len(cities))
    return states, cities


def load(
    raw_dir: pathlib.Path, max_size: int = MAX_FILE_SIZE
) -> tuple[list[models.Country], list[models.State], list[models.City]]:
    """Load the countries and states+cities datasets. Fails on the first bad record."""
    countries = load_countries(raw_dir / COUNTRIES_FILE, max_size)
    states, cities = load_states(raw_dir / STATES_FILE, max_size)
    return countries, states, cities
