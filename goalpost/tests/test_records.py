from unittest import TestCase

from goalpost.aggregator import RowAggregator
from goalpost.metrics import GOAL_METRICS, record_name
from goalpost.model import Record, NUMERIC, BLOB, DistributionTable
from goalpost.records import RecordAssembler

from . import data


class TestRecordName(TestCase):

    def test_overall(self):
        self.assertEqual(record_name('nb_conversions'),
                         'Goal_nb_conversions')

    def test_per_goal(self):
        self.assertEqual(record_name('revenue', 3), 'Goal_3_revenue')
        self.assertEqual(record_name('days_until_conv', -1),
                         'Goal_-1_days_until_conv')

    def test_goal_zero_is_scoped(self):
        self.assertEqual(record_name('items', 0), 'Goal_0_items')


class TestAssemble(TestCase):

    def setUp(self):
        self.assembler = RecordAssembler()

    def test_empty(self):
        records = self.assembler.assemble(RowAggregator())
        self.assertEqual(records, {
            'Goal_nb_conversions': 0,
            'Goal_nb_visits_converted': 0,
            'Goal_revenue': 0,
            'Goal_visits_until_conv': {},
            'Goal_days_until_conv': {},
        })
        self.assertIsInstance(records['Goal_visits_until_conv'],
                              DistributionTable)

    def test_full(self):
        catalog = data.make_catalog()
        agg = RowAggregator()
        agg.add_rows(catalog.query_conversions([1], data.make_period()))
        records = self.assembler.assemble(agg, nb_visits_converted=5)

        for name, value in data.expected_totals.items():
            self.assertEqual(records[name], value)

        for id_goal, values in data.expected_goal_metrics.items():
            for metric, value in values.items():
                self.assertEqual(records[record_name(metric, id_goal)],
                                 value)
            self.assertEqual(
                data.nonzero(records[record_name('visits_until_conv',
                                                 id_goal)]),
                data.expected_visits[id_goal])
            self.assertEqual(
                data.nonzero(records[record_name('days_until_conv',
                                                 id_goal)]),
                data.expected_days[id_goal])

        self.assertEqual(data.nonzero(records['Goal_visits_until_conv']),
                         data.expected_visits_overview)
        self.assertEqual(data.nonzero(records['Goal_days_until_conv']),
                         data.expected_days_overview)

        # 3 totals, 2 overviews, and 8 metrics plus 2 tables for 4 goals.
        self.assertEqual(len(records), 3 + 2 + 4 * (8 + 2))

    def test_overview_is_sum_of_standard_goals(self):
        catalog = data.make_catalog()
        agg = RowAggregator()
        agg.add_rows(catalog.query_conversions([1], data.make_period()))
        records = self.assembler.assemble(agg)

        for name in ('visits_until_conv', 'days_until_conv'):
            expected = DistributionTable()
            expected.add_table(records[record_name(name, 1)])
            expected.add_table(records[record_name(name, 2)])
            self.assertEqual(records[record_name(name)], expected)

    def test_record_order(self):
        agg = RowAggregator()
        agg.add_rows([dict(idgoal=1, visitor_count_visits=1,
                           visitor_seconds_since_first=0,
                           **dict((m, 1) for m in GOAL_METRICS))])
        names = list(self.assembler.assemble(agg))
        self.assertEqual(names[:3], ['Goal_nb_conversions',
                                     'Goal_nb_visits_converted',
                                     'Goal_revenue'])
        self.assertEqual(names[3:11],
                         [record_name(m, 1) for m in GOAL_METRICS])
        self.assertEqual(names[11:], ['Goal_1_visits_until_conv',
                                      'Goal_visits_until_conv',
                                      'Goal_1_days_until_conv',
                                      'Goal_days_until_conv'])


class TestRecordMetadata(TestCase):

    def setUp(self):
        self.assembler = RecordAssembler()

    def test_no_goals(self):
        records = self.assembler.record_metadata([])
        self.assertEqual(records, [
            Record(BLOB, 'Goal_visits_until_conv'),
            Record(BLOB, 'Goal_days_until_conv'),
            Record(NUMERIC, 'Goal_nb_conversions'),
            Record(NUMERIC, 'Goal_nb_visits_converted'),
            Record(NUMERIC, 'Goal_revenue'),
        ])

    def test_goals_with_ecommerce(self):
        records = self.assembler.record_metadata([1, 2],
                                                 ecommerce_active=True)
        self.assertEqual(len(records), len(set(records)))
        self.assertEqual(len(records), 5 + 4 * (len(GOAL_METRICS) + 2))

        names = set(r.name for r in records)
        for id_goal in (1, 2, 0, -1):
            for metric in GOAL_METRICS:
                self.assertIn(Record.numeric(record_name(metric, id_goal)),
                              records)
            self.assertIn(Record.blob(record_name('visits_until_conv',
                                                  id_goal)), records)
            self.assertIn(Record.blob(record_name('days_until_conv',
                                                  id_goal)), records)
        self.assertIn('Goal_visits_until_conv', names)
        self.assertIn('Goal_days_until_conv', names)
        self.assertIn('Goal_nb_conversions', names)
        self.assertIn('Goal_nb_visits_converted', names)
        self.assertIn('Goal_revenue', names)

    def test_goals_without_ecommerce(self):
        records = self.assembler.record_metadata([1, 2])
        names = set(r.name for r in records)
        self.assertIn('Goal_2_items', names)
        self.assertNotIn('Goal_0_items', names)
        self.assertNotIn('Goal_-1_revenue', names)

    def test_matches_assembled_records(self):
        # Every record actually produced is part of the declared schema,
        # with the right kind.
        catalog = data.make_catalog()
        agg = RowAggregator()
        agg.add_rows(catalog.query_conversions([1], data.make_period()))
        records = self.assembler.assemble(agg)
        schema = self.assembler.record_metadata(catalog.get_goal_ids(1),
                                                ecommerce_active=True)
        kinds = dict((r.name, r.kind) for r in schema)
        for name, value in records.items():
            expected = BLOB if isinstance(value, dict) else NUMERIC
            self.assertEqual(kinds[name], expected)

    def test_record_to_list(self):
        self.assertEqual(Record.numeric('Goal_revenue').to_list(),
                         ['numeric', 'Goal_revenue'])
