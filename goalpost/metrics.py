"""
The closed catalog of per-goal conversion metrics, reserved goal ids, and
archive record naming.
"""

# Reserved goal ids for ecommerce pseudo-goals.
IDGOAL_CART = -1
IDGOAL_ORDER = 0

ECOMMERCE_GOAL_IDS = frozenset([IDGOAL_CART, IDGOAL_ORDER])

# Per-goal metrics
NB_CONVERSIONS = 'nb_conversions'
NB_VISITS_CONVERTED = 'nb_visits_converted'
REVENUE = 'revenue'
REVENUE_SUBTOTAL = 'revenue_subtotal'
REVENUE_TAX = 'revenue_tax'
REVENUE_SHIPPING = 'revenue_shipping'
REVENUE_DISCOUNT = 'revenue_discount'
ITEMS = 'items'

GOAL_METRICS = (
    NB_CONVERSIONS,
    NB_VISITS_CONVERTED,
    REVENUE,
    REVENUE_SUBTOTAL,
    REVENUE_TAX,
    REVENUE_SHIPPING,
    REVENUE_DISCOUNT,
    ITEMS,
)

RECORD_PREFIX = 'Goal_'


def record_name(name, id_goal=None):
    """
    Build an archive record name.

    :param name:
        Base metric or dimension name, like ``'revenue'``.
    :type name:
        string
    :param id_goal:
        If given, the record is scoped to this goal. Note that ``0`` is a
        valid goal id (ecommerce orders).
    :type id_goal:
        int or None
    :returns:
        ``'Goal_<name>'`` or ``'Goal_<id_goal>_<name>'``.
    :rtype:
        string
    """
    if id_goal is None:
        return RECORD_PREFIX + name
    return '%s%d_%s' % (RECORD_PREFIX, int(id_goal), name)


def check_metrics(metrics):
    """
    Validate a sequence of metric names against the catalog, returning them
    as a tuple.
    """
    metrics = tuple(metrics)
    for name in metrics:
        if name not in GOAL_METRICS:
            raise ValueError('unknown goal metric: %r' % name)
    return metrics
