import io
from contextlib import redirect_stdout
from decimal import Decimal

from goalpost import client as client_module
from goalpost.archiver import GoalsArchiver
from goalpost.client import (Client, ServerError, UnknownMethod,
                             InvalidRequest, RequestTimeout, error_from_reply,
                             decode_records)
from goalpost.model import DistributionTable, Record, BLOB, NUMERIC
from goalpost.server import Server, encode, decode

from . import data
from .base import BaseTest


class MockBackend(object):

    def foo(self, a, b):
        return u"foo: %r %r" % (a, b)

    def bar(self, *args, **kw):
        return u"bar: %r %r" % (args, kw)

    def failme(self, a):
        raise RuntimeError('sad')

    def _secret(self):
        return 'nope'


class TestClientServer(BaseTest):

    def test_basic(self):
        backend = MockBackend()
        server = Server(backend, 'tcp://127.0.0.1:31338')
        client = Client('tcp://127.0.0.1:31338')

        try:
            server.start()
            self.assertEqual(client.foo(4, 'blah'), "foo: 4 'blah'")
            self.assertEqual(
                client.bar('hello', 'world', **dict(a=12, b='blah')),
                "bar: ('hello', 'world') {'a': 12, 'b': 'blah'}")

            with self.assertRaisesRegex(ServerError, 'RuntimeError: sad'):
                client.failme(42)

            with self.assertRaises(UnknownMethod):
                client._secret()

            with self.assertRaises(InvalidRequest) as cm:
                client.foo(1)
            self.assertEqual(cm.exception.name, 'TypeError')
        finally:
            client.close()
            server.kill()

    def test_timeout(self):
        client = Client('tcp://127.0.0.1:31339', wait=10)
        try:
            with self.assertRaisesRegex(RequestTimeout,
                                        'Timed out after 10 ms waiting'):
                client.foo()
        finally:
            client.close()

    def test_archiver(self):
        archiver = GoalsArchiver(data.make_catalog())
        server = Server(archiver, 'tcp://127.0.0.1:31340')
        client = Client('tcp://127.0.0.1:31340')

        try:
            server.start()
            records = client.archive(1, data.test_date)
            self.assertEqual(records['Goal_revenue'], Decimal('164.75'))
            self.assertEqual(records['Goal_nb_conversions'], 6)

            days = records['Goal_days_until_conv']
            self.assertIsInstance(days, DistributionTable)
            self.assertEqual(data.nonzero(days), data.expected_days_overview)
            self.assertEqual(list(records['Goal_1_visits_until_conv']),
                             list(archiver.columns[0].labels))

            schema = client.record_metadata(1)
            self.assertIn(Record(BLOB, 'Goal_visits_until_conv'), schema)
            self.assertIn(Record(NUMERIC, 'Goal_-1_revenue'), schema)
            self.assertEqual(set(schema),
                             set(archiver.record_metadata(1)))

            with self.assertRaisesRegex(InvalidRequest, 'invalid period'):
                client.archive(1, data.test_date, 'fortnight')
        finally:
            client.close()
            server.kill()

    def test_main_prints_records(self):
        archiver = GoalsArchiver(data.make_catalog())
        server = Server(archiver, 'tcp://127.0.0.1:31341')

        out = io.StringIO()
        try:
            server.start()
            with redirect_stdout(out):
                client_module.main(['--connect', 'tcp://127.0.0.1:31341',
                                    '-s', '1', '-d', data.test_date])
        finally:
            server.kill()

        self.assertIn('Goal_1_nb_conversions\t3\n', out.getvalue())
        self.assertIn('Goal_2_visits_until_conv\t1=0 ', out.getvalue())


class TestDecoding(BaseTest):

    def test_error_from_reply(self):
        err = error_from_reply(['AttributeError', 'private method: _x'])
        self.assertIsInstance(err, UnknownMethod)
        self.assertEqual(str(err), 'AttributeError: private method: _x')

        err = error_from_reply(['MissingFieldError', "'revenue'"])
        self.assertIs(type(err), ServerError)
        self.assertEqual(err.name, 'MissingFieldError')

    def test_decode_records(self):
        records = decode_records({'Goal_revenue': Decimal('1.50'),
                                  'Goal_days_until_conv': {'0': 2, '1': 0}})
        self.assertEqual(records['Goal_revenue'], Decimal('1.50'))
        table = records['Goal_days_until_conv']
        self.assertIsInstance(table, DistributionTable)
        self.assertEqual(table.to_rows(), [('0', 2), ('1', 0)])


class TestEncoding(BaseTest):

    def test_round_trip_decimal(self):
        msg = ['ok', {'Goal_revenue': Decimal('10.10')}]
        self.assertEqual(decode(encode(msg)), msg)

    def test_unserializable(self):
        with self.assertRaises(TypeError):
            encode(['ok', object()])
