import logging
from collections import defaultdict

from .metrics import (GOAL_METRICS, IDGOAL_CART, NB_CONVERSIONS,
                      NB_VISITS_CONVERTED)
from .ranges import default_columns

log = logging.getLogger(__name__)


class MemoryCatalog(object):
    """
    An in-memory site catalog and conversion log, intended for testing and
    for embedding. Implements both the catalog interface (goals, ecommerce,
    rollups) and the conversion row source interface.

    Set ``available`` to False to simulate a query layer that cannot return
    data.
    """
    def __init__(self):
        self._sites = {}
        self._goals = defaultdict(dict)
        self._rollups = {}
        self._conversions = []
        self.available = True

    def add_site(self, site_id, ecommerce=False, timezone='UTC'):
        self._sites[site_id] = dict(ecommerce=ecommerce, timezone=timezone)

    def add_goal(self, site_id, id_goal, name=''):
        self._goals[site_id][id_goal] = name

    def add_rollup(self, site_id, member_ids):
        self._rollups[site_id] = list(member_ids)

    def record_conversion(self, site_id, idvisit, idgoal, timestamp,
                          visit_count=1, seconds_since_first=0, revenue=0,
                          revenue_subtotal=0, revenue_tax=0,
                          revenue_shipping=0, revenue_discount=0, items=0):
        self._conversions.append(dict(
            idsite=site_id,
            idvisit=idvisit,
            idgoal=idgoal,
            server_time=timestamp,
            visitor_count_visits=visit_count,
            visitor_seconds_since_first=seconds_since_first,
            revenue=revenue,
            revenue_subtotal=revenue_subtotal,
            revenue_tax=revenue_tax,
            revenue_shipping=revenue_shipping,
            revenue_discount=revenue_discount,
            items=items))

    def get_goal_ids(self, site_id):
        return sorted(self._goals.get(site_id, {}))

    def uses_ecommerce(self, site_id):
        site = self._sites.get(site_id)
        return bool(site and site['ecommerce'])

    def get_timezone(self, site_id):
        site = self._sites.get(site_id)
        return site['timezone'] if site else 'UTC'

    def get_rollup_members(self, site_id):
        return list(self._rollups.get(site_id, ()))

    def _matching(self, site_ids, period):
        site_ids = set(site_ids)
        for conv in self._conversions:
            if conv['idsite'] in site_ids and conv['server_time'] in period:
                yield conv

    def query_conversions(self, site_ids, period, columns=default_columns):
        """
        Return conversion rows grouped by goal and by the field of each
        requested column, or None if the log is unavailable. A goal's
        distinct converted visits are carried by its first row only.
        """
        if not self.available:
            log.warning('Conversion log unavailable for sites %r.', site_ids)
            return None

        fields = [column.field for column in columns]
        groups = {}
        visits = defaultdict(set)
        for conv in self._matching(site_ids, period):
            key = (conv['idgoal'],) + tuple(conv[f] for f in fields)
            if key not in groups:
                row = dict(zip(fields, key[1:]))
                row['idgoal'] = conv['idgoal']
                for metric in GOAL_METRICS:
                    row[metric] = 0
                groups[key] = row
            row = groups[key]
            row[NB_CONVERSIONS] += 1
            visits[conv['idgoal']].add(conv['idvisit'])
            for metric in GOAL_METRICS:
                if metric not in (NB_CONVERSIONS, NB_VISITS_CONVERTED):
                    row[metric] += conv[metric]

        for row in groups.values():
            row[NB_VISITS_CONVERTED] = len(visits.pop(row['idgoal'], ()))
        return list(groups.values())

    def count_visits_converted(self, site_ids, period):
        return len(set(conv['idvisit']
                       for conv in self._matching(site_ids, period)
                       if conv['idgoal'] != IDGOAL_CART))
