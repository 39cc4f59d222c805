from .metrics import ECOMMERCE_GOAL_IDS
from .model import DistributionTable


def standard_goal_filter(ecommerce_ids=ECOMMERCE_GOAL_IDS):
    """
    Build a predicate which is true for ecommerce-class goal ids, backed by a
    set lookup.
    """
    ecommerce_ids = frozenset(ecommerce_ids)

    def is_ecommerce_goal(id_goal):
        return id_goal in ecommerce_ids
    return is_ecommerce_goal


def compose_overview(tables_by_goal, is_ecommerce_goal=None):
    """
    Merge per-goal distribution tables into a single overview table, summing
    counts label by label. Tables belonging to ecommerce-class goals are left
    out.

    :param tables_by_goal:
        Dict mapping goal id to ``DistributionTable``.
    :param is_ecommerce_goal:
        Callable taking a goal id. Defaults to membership in the reserved
        ecommerce goal ids.
    :returns:
        A new ``DistributionTable``. The input tables are not modified.
    """
    if is_ecommerce_goal is None:
        is_ecommerce_goal = standard_goal_filter()

    overview = DistributionTable()
    for id_goal, table in tables_by_goal.items():
        if not is_ecommerce_goal(id_goal):
            overview.add_table(table)
    return overview
