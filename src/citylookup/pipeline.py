import dataclasses
import dotenv
import logging
import os
import pathlib

from . import emitter
from . import errors
from . import hierarchy
from . import loader
from . import models


LOG = logging.getLogger()


def env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        LOG.warning("Ignoring %s=%r: not an integer, using %s", name, value, default)
        return default


dotenv.load_dotenv()
RAW_DIR = pathlib.Path(os.getenv("CITYLOOKUP_RAW_DIR", "data/raw"))
OUT_DIR = pathlib.Path(
    os.getenv("CITYLOOKUP_OUT_DIR", os.path.join("data", "generated", "per-country"))
)
MAX_FILE_SIZE = env_int("CITYLOOKUP_MAX_FILE_SIZE", loader.MAX_FILE_SIZE)


@dataclasses.dataclass
class Summary:
    countries_written: int = 0
    orphaned_states: int = 0
    orphaned_cities: int = 0
    failures: list[emitter.EmitFailure] = dataclasses.field(default_factory=list)

    @property
    def exit_code(self) -> int:
        """0 on success, orphans included. 2 if some country files were not written."""
        return 2 if self.failures else 0

    def __str__(self):
        ret = (
            f"{self.countries_written} countries written, "
            f"{self.orphaned_states} orphaned states, "
            f"{self.orphaned_cities} orphaned cities"
        )
        if self.failures:
            ret += f", {len(self.failures)} failed: "
            ret += ", ".join(f.artifact for f in self.failures)
        return ret


def prepare_output(out_dir: pathlib.Path) -> None:
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise errors.OutputError(str(out_dir), err.strerror or str(err))


def run(
    raw_dir: pathlib.Path = RAW_DIR,
    out_dir: pathlib.Path = OUT_DIR,
    order: models.SortOrder = models.SortOrder.INPUT,
    max_size: int = MAX_FILE_SIZE,
) -> Summary:
    """Load the raw datasets, build the country trees and write one file per country.
    Loading and output directory errors are fatal and raised before anything is written.
    """
    countries, states, cities = loader.load(raw_dir, max_size)
    result = hierarchy.build(countries, states, cities)
    trees = hierarchy.sort_trees(result.trees, order)
    prepare_output(out_dir)
    written, failures = emitter.emit(trees, out_dir)
    summary = Summary(
        countries_written=len(written),
        orphaned_states=result.orphaned_states,
        orphaned_cities=result.orphaned_cities,
        failures=failures,
    )
    if failures:
        LOG.warning("Processing incomplete: %s", summary)
    else:
        LOG.info("Processing complete: %s", summary)
    return summary
