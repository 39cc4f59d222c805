import logging
from collections import defaultdict

from .metrics import (GOAL_METRICS, NB_CONVERSIONS, REVENUE, IDGOAL_CART,
                      check_metrics)
from .model import DistributionTable
from .ranges import default_columns

log = logging.getLogger(__name__)


class MissingFieldError(KeyError):
    """
    Raised when a conversion row lacks a field the aggregator expects. This
    means the query layer and the metric catalog disagree, so it is never
    ignored.
    """
    def __init__(self, field, id_goal=None):
        KeyError.__init__(self, field, id_goal)
        self.field = field
        self.id_goal = id_goal

    def __str__(self):
        return 'conversion row for goal %r is missing field %r' % (
            self.id_goal, self.field)


class RowAggregator(object):
    """
    Accumulates conversion rows for a single site and period.

    For every row, the declared metrics are summed per goal, and the row's
    conversion count is added to the matching bucket of each ranged column's
    per-goal distribution table. Overall conversion and revenue totals skip
    the abandoned cart goal, which is a "negative" conversion.

    This is NOT thread-safe, and is meant to be discarded after use.
    """
    def __init__(self, metrics=GOAL_METRICS, columns=default_columns):
        self.metrics = check_metrics(metrics)
        self.columns = tuple(columns)
        self.reset()

    def reset(self):
        self.rows_per_goal = defaultdict(int)
        self.values = defaultdict(int)
        self.distributions = {column.name: {} for column in self.columns}

        self.total_conversions = 0
        self.total_revenue = 0
        self.num_rows = 0

    def _get(self, row, field, id_goal=None):
        try:
            return row[field]
        except KeyError:
            raise MissingFieldError(field, id_goal)

    def add_row(self, row):
        id_goal = int(self._get(row, 'idgoal'))

        # Read everything first so that a bad row leaves no partial sums.
        values = [(metric, self._get(row, metric, id_goal))
                  for metric in self.metrics]
        nb_conversions = self._get(row, NB_CONVERSIONS, id_goal)
        revenue = self._get(row, REVENUE, id_goal)
        buckets = [(column, column.bucket(self._get(row, column.field,
                                                    id_goal)))
                   for column in self.columns]

        self.rows_per_goal[id_goal] += 1

        for metric, value in values:
            self.values[(id_goal, metric)] += value

        for column, label in buckets:
            tables = self.distributions[column.name]
            if id_goal not in tables:
                tables[id_goal] = DistributionTable(column.labels)
            tables[id_goal].increment(label, nb_conversions)

        if id_goal != IDGOAL_CART:
            self.total_conversions += nb_conversions
            self.total_revenue += revenue

        self.num_rows += 1

    def add_rows(self, rows):
        for row in rows:
            self.add_row(row)
        log.debug('Aggregated %d conversion rows over %d goals.',
                  self.num_rows, len(self.rows_per_goal))

    @property
    def goal_ids(self):
        "Goal ids in the order they were first seen."
        return list(self.rows_per_goal)

    def goal_metrics(self):
        """
        Return a dict mapping goal id to a dict of summed metric values, in
        the order goals were first seen and metrics are declared.
        """
        return {id_goal: {metric: self.values[(id_goal, metric)]
                          for metric in self.metrics}
                for id_goal in self.goal_ids}

    def tables(self, column_name):
        "Return the per-goal distribution tables for the named column."
        return self.distributions[column_name]
