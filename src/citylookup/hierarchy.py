import collections
import dataclasses
import logging

from . import errors
from . import models

LOG = logging.getLogger()


@dataclasses.dataclass
class Hierarchy:
    trees: list[models.CountryTree]
    orphans: list[errors.OrphanReference] = dataclasses.field(default_factory=list)

    @property
    def orphaned_states(self) -> int:
        return sum(1 for o in self.orphans if o.kind == errors.OrphanKind.STATE)

    @property
    def orphaned_cities(self) -> int:
        return sum(1 for o in self.orphans if o.kind == errors.OrphanKind.CITY)


def group_by(records: list, key) -> dict[int, list]:
    """Group records by foreign key, keeping input order inside each group"""
    groups = collections.defaultdict(list)
    for record in records:
        groups[key(record)].append(record)
    return groups


def build(
    countries: list[models.Country],
    states: list[models.State],
    cities: list[models.City],
) -> Hierarchy:
    """Nest cities under their state and states under their country.

    One tree per country, in countries order, even for countries without states.
    States and cities keep their input order. Records with a dangling foreign key
    are left out of the trees and reported as orphans, exactly once each:
    states referencing an unknown country, then cities, either referencing an
    unknown state or belonging to an orphaned state (unreachable).
    """
    country_ids = {c.id for c in countries}
    cities_by_state = group_by(cities, lambda c: c.state_id)
    states_by_country = group_by(states, lambda s: s.country_id)
    trees = [
        models.CountryTree(
            country=country,
            states=[
                models.StateNode(state=state, cities=cities_by_state.get(state.id, []))
                for state in states_by_country.get(country.id, [])
            ],
        )
        for country in countries
    ]
    orphans = []
    orphan_state_ids = set()
    for state in states:
        if state.country_id in country_ids:
            continue
        orphan_state_ids.add(state.id)
        orphans.append(
            errors.OrphanReference(
                errors.OrphanKind.STATE,
                state.id,
                state.country_id,
                errors.OrphanReason.MISSING_COUNTRY,
            )
        )
    state_ids = {s.id for s in states}
    for city in cities:
        if city.state_id not in state_ids:
            reason = errors.OrphanReason.MISSING_STATE
        elif city.state_id in orphan_state_ids:
            reason = errors.OrphanReason.UNREACHABLE
        else:
            continue
        orphans.append(
            errors.OrphanReference(
                errors.OrphanKind.CITY, city.id, city.state_id, reason
            )
        )
    for orphan in orphans:
        LOG.warning("%s", orphan)
    ret = Hierarchy(trees=trees, orphans=orphans)
    LOG.info(
        "Built %s country trees (%s orphaned states, %s orphaned cities)",
        len(trees),
        ret.orphaned_states,
        ret.orphaned_cities,
    )
    return ret


def sort_trees(
    trees: list[models.CountryTree], order: models.SortOrder
) -> list[models.CountryTree]:
    """Re-order states and cities inside each tree. Countries keep their order.
    Returns new trees, the given ones are left untouched.
    """
    match order:
        case models.SortOrder.INPUT:
            return list(trees)
        case models.SortOrder.NAME:
            key = lambda r: (r.name, r.id)  # noqa: E731
        case models.SortOrder.ID:
            key = lambda r: r.id  # noqa: E731
    return [
        models.CountryTree(
            country=tree.country,
            states=[
                models.StateNode(state=node.state, cities=sorted(node.cities, key=key))
                for node in sorted(tree.states, key=lambda n: key(n.state))
            ],
        )
        for tree in trees
    ]
