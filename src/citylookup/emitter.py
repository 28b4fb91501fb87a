import dataclasses
import logging
import math
import orjson
import os
import pathlib
import typing

from . import errors
from . import models

LOG = logging.getLogger()
EXTENSION = ".json"


@dataclasses.dataclass
class EmitFailure:
    artifact: str
    error: errors.EncodeError | errors.WriteError


def artifact_id(country: models.Country) -> str:
    """Artifact identifier: {id}_{ISO2}, eg. 1_US"""
    return f"{country.id}_{country.iso2.upper()}"


def artifact_path(out_dir: pathlib.Path, country: models.Country) -> pathlib.Path:
    return out_dir / (artifact_id(country) + EXTENSION)


def _city(city: models.City) -> dict[str, typing.Any]:
    if not (math.isfinite(city.latitude) and math.isfinite(city.longitude)):
        raise ValueError(f"city #{city.id} has non-finite coordinates")
    return {
        "id": city.id,
        "name": city.name,
        "latitude": city.latitude,
        "longitude": city.longitude,
    }


def _state(node: models.StateNode) -> dict[str, typing.Any]:
    return {
        "id": node.state.id,
        "name": node.state.name,
        **dict(sorted(node.state.extra.items())),
        "cities": [_city(c) for c in node.cities],
    }


def _country(tree: models.CountryTree) -> dict[str, typing.Any]:
    # passthrough fields are sorted so the output does not depend on their input order
    return {
        "id": tree.country.id,
        "iso2": tree.country.iso2,
        "name": tree.country.name,
        **dict(sorted(tree.country.extra.items())),
        "states": [_state(s) for s in tree.states],
    }


def encode(tree: models.CountryTree) -> bytes:
    """Serialize the tree. Same tree, same bytes."""
    try:
        return orjson.dumps(
            _country(tree), option=orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE
        )
    except (ValueError, TypeError) as err:
        # orjson.JSONEncodeError is a TypeError
        raise errors.EncodeError(artifact_id(tree.country), str(err))


def write(tree: models.CountryTree, out_dir: pathlib.Path) -> pathlib.Path:
    """Encode and persist the tree.
    The artifact only replaces a previous one once fully written: a failed write
    leaves the previous artifact (or no artifact) in place.
    """
    data = encode(tree)
    path = artifact_path(out_dir, tree.country)
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    except OSError as err:
        tmp.unlink(missing_ok=True)
        raise errors.WriteError(artifact_id(tree.country), err.strerror or str(err))
    return path


def emit(
    trees: list[models.CountryTree], out_dir: pathlib.Path
) -> tuple[list[pathlib.Path], list[EmitFailure]]:
    """Write one artifact per tree.
    A tree failing to encode or write is skipped and reported, the others proceed.
    """
    written, failures = [], []
    total = len(trees)
    LOG.info("Writing %s country files...", total)
    for i, tree in enumerate(trees, 1):
        try:
            path = write(tree, out_dir)
        except (errors.EncodeError, errors.WriteError) as err:
            LOG.exception("Skipping country %s", artifact_id(tree.country))
            failures.append(EmitFailure(artifact_id(tree.country), err))
            continue
        written.append(path)
        LOG.debug(
            "[%3d%%] Wrote %s with %s states, %s cities",
            i * 100 // total,
            path.name,
            len(tree.states),
            tree.cities_count,
        )
    return written, failures
