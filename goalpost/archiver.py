import logging

from .aggregator import RowAggregator
from .eligibility import EligibilityGate
from .metrics import GOAL_METRICS, check_metrics
from .period import Period
from .records import RecordAssembler
from .ranges import default_columns

log = logging.getLogger(__name__)


class GoalsArchiver(object):
    """
    Computes the goal conversion records for one site and one period at a
    time.

    :param catalog:
        Provides ``get_goal_ids``, ``uses_ecommerce``,
        ``get_rollup_members`` and ``get_timezone`` for a site id.
    :param source:
        Provides ``query_conversions(site_ids, period, columns)`` and
        ``count_visits_converted(site_ids, period)``. Defaults to the
        catalog.
    :param store:
        If given, ``archive()`` hands each record set to its
        ``put_records(site_id, period, records)``.
    :param ecommerce_active:
        Whether the reserved ecommerce goals are part of the record schema.
    """
    def __init__(self, catalog, source=None, store=None,
                 ecommerce_active=True, metrics=GOAL_METRICS,
                 columns=default_columns):
        self.catalog = catalog
        self.source = source or catalog
        self.store = store
        self.ecommerce_active = ecommerce_active
        self.metrics = check_metrics(metrics)
        self.columns = tuple(columns)

        self.gate = EligibilityGate(catalog)
        self.assembler = RecordAssembler(self.metrics, self.columns)

    def site_ids_for(self, site_id):
        "Return the site ids whose data makes up ``site_id``."
        return self.catalog.get_rollup_members(site_id) or [site_id]

    def aggregate(self, site_id, period):
        """
        Build the record set for ``site_id`` over ``period``. If neither the
        site nor any rollup member has goals or ecommerce, no rows are
        queried, but the mandatory records are still returned.
        """
        site_ids = self.site_ids_for(site_id)
        aggregator = RowAggregator(self.metrics, self.columns)

        if self.gate.should_aggregate(site_id, site_ids):
            rows = self.source.query_conversions(site_ids, period,
                                                 self.columns)
            if rows is None:
                log.warning('No conversion data for site %s in %r, '
                            'archiving empty records.', site_id, period)
                return self.assembler.assemble(aggregator, 0)
            aggregator.add_rows(rows)

        nb_visits_converted = self.source.count_visits_converted(site_ids,
                                                                 period)
        return self.assembler.assemble(aggregator, nb_visits_converted)

    def archive(self, site_id, date, period='day'):
        """
        Aggregate and, if a store is configured, persist the records for
        ``site_id`` over the period of kind ``period`` containing ``date``
        (a ``YYYY-MM-DD`` string) in the site's timezone.
        """
        tzname = self.catalog.get_timezone(site_id)
        p = Period.parse(period, date, tzname)

        log.info('Archiving goals for site %s, %r.', site_id, p)
        records = self.aggregate(site_id, p)

        if self.store is not None:
            self.store.put_records(site_id, p, records)
        log.info('Archived %d goal records for site %s.', len(records),
                 site_id)
        return records

    def record_metadata(self, site_id):
        "List every record that archiving ``site_id`` may produce."
        return self.assembler.record_metadata(
            self.catalog.get_goal_ids(site_id),
            ecommerce_active=self.ecommerce_active)
