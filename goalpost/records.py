"""
Turns aggregated conversion state into the flat set of named archive
records, and describes every record a site could produce.
"""

from .metrics import (GOAL_METRICS, ECOMMERCE_GOAL_IDS, NB_CONVERSIONS,
                      NB_VISITS_CONVERTED, REVENUE, check_metrics,
                      record_name)
from .model import Record
from .overview import compose_overview, standard_goal_filter
from .ranges import default_columns


class RecordAssembler(object):

    def __init__(self, metrics=GOAL_METRICS, columns=default_columns,
                 ecommerce_ids=ECOMMERCE_GOAL_IDS):
        self.metrics = check_metrics(metrics)
        self.columns = tuple(columns)
        self.ecommerce_ids = frozenset(ecommerce_ids)
        self.is_ecommerce_goal = standard_goal_filter(self.ecommerce_ids)

    def assemble(self, aggregator, nb_visits_converted=0):
        """
        Build the record set for an aggregation run.

        The three overall totals and one overview table per ranged column are
        always present, even if the aggregator saw no rows. Per-goal records
        exist only for goals that had conversions.

        :param aggregator:
            A ``RowAggregator`` which has consumed the period's rows, or a
            fresh one if aggregation was skipped.
        :param nb_visits_converted:
            Number of visits which converted at least once, computed outside
            of the aggregator.
        :returns:
            Dict mapping record name to a number or a ``DistributionTable``.
        """
        records = {
            record_name(NB_CONVERSIONS): aggregator.total_conversions,
            record_name(NB_VISITS_CONVERTED): nb_visits_converted,
            record_name(REVENUE): aggregator.total_revenue,
        }

        for id_goal, values in aggregator.goal_metrics().items():
            for metric, value in values.items():
                records[record_name(metric, id_goal)] = value

        for column in self.columns:
            tables = aggregator.tables(column.name)
            for id_goal, table in tables.items():
                records[record_name(column.name, id_goal)] = table
            records[record_name(column.name)] = compose_overview(
                tables, self.is_ecommerce_goal)

        return records

    def record_metadata(self, goal_ids, ecommerce_active=False):
        """
        List every record that could be archived for a site, independent of
        any actual data.

        :param goal_ids:
            Ids of the goals configured for the site.
        :param ecommerce_active:
            If True, records for the reserved ecommerce goals are included.
        :returns:
            List of ``Record`` instances.
        """
        records = [Record.blob(record_name(column.name))
                   for column in self.columns]
        records.extend([
            Record.numeric(record_name(NB_CONVERSIONS)),
            Record.numeric(record_name(NB_VISITS_CONVERTED)),
            Record.numeric(record_name(REVENUE)),
        ])

        goal_ids = list(goal_ids)
        if ecommerce_active:
            goal_ids.extend(sorted(self.ecommerce_ids - set(goal_ids)))

        for id_goal in goal_ids:
            for metric in self.metrics:
                records.append(Record.numeric(record_name(metric, id_goal)))
            for column in self.columns:
                records.append(Record.blob(record_name(column.name, id_goal)))

        return records
