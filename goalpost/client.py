import argparse
import code

import zmq

from .model import DistributionTable, Record
from .server import ctx, default_bind, encode, decode


class ServerError(Exception):
    """
    Raised when the server replies with an error. ``name`` is the class name
    of the exception raised on the server side.
    """
    def __init__(self, name, message):
        Exception.__init__(self, '%s: %s' % (name, message))
        self.name = name
        self.message = message


class UnknownMethod(ServerError):
    pass


class InvalidRequest(ServerError):
    pass


class RequestTimeout(Exception):
    pass


error_classes = {
    'AttributeError': UnknownMethod,
    'TypeError': InvalidRequest,
    'ValueError': InvalidRequest,
    'InvalidRangeError': InvalidRequest,
}


def error_from_reply(resp):
    name, message = resp
    return error_classes.get(name, ServerError)(name, message)


def decode_records(records):
    """
    Turn a record set as received over the wire back into the form
    ``GoalsArchiver`` produced it: blob records become ``DistributionTable``
    instances, keeping the label order they were sent in.
    """
    decoded = {}
    for name, value in records.items():
        if isinstance(value, dict):
            table = DistributionTable()
            table.update(value)
            value = table
        decoded[name] = value
    return decoded


class Client(object):
    """
    Talks to a ``goalpost-server``. The archiver methods are wrapped so that
    their results come back as goalpost types, other public methods of the
    server backend are proxied as is.
    """
    def __init__(self, connect=default_bind, wait=3000):
        self.sock = ctx.socket(zmq.REQ)
        self.sock.setsockopt(zmq.LINGER, 0)
        self.sock.connect(connect)

        self.poller = zmq.Poller()
        self.poller.register(self.sock, zmq.POLLIN)

        self.wait = wait

    def close(self):
        self.sock.close()

    def call(self, name, *args, **kwargs):
        self.sock.send(encode([name, args, kwargs]))

        if not self.poller.poll(self.wait):
            raise RequestTimeout('Timed out after %d ms waiting for '
                                 'reply' % self.wait)
        status, resp = decode(self.sock.recv())
        if status != 'ok':
            raise error_from_reply(resp)
        return resp

    def archive(self, site_id, date, period='day'):
        return decode_records(self.call('archive', site_id, date, period))

    def record_metadata(self, site_id):
        return [Record(kind, name)
                for kind, name in self.call('record_metadata', site_id)]

    def __getattr__(self, name):
        def rpc_method(*args, **kwargs):
            return self.call(name, *args, **kwargs)
        return rpc_method


def main(argv=None):
    p = argparse.ArgumentParser(description='Run a goalpost client.')
    p.add_argument('--connect', type=str,
                   default=default_bind,
                   help='ZeroMQ socket description to connect to')
    p.add_argument('-s', '--site', dest='site_id', type=int,
                   help='Archive this site and print its records, instead '
                   'of starting an interactive session')
    p.add_argument('-d', '--date', dest='date', type=str,
                   help='Date within the period, as YYYY-MM-DD')
    p.add_argument('-p', '--period', dest='period', type=str, default='day',
                   help='Period to archive')
    args = p.parse_args(argv)

    client = Client(args.connect)
    if args.site_id is None:
        code.interact("The 'client' object is available for queries.",
                      local=dict(client=client))
        return

    if not args.date:
        p.error('a date is required to archive a site')
    try:
        records = client.archive(args.site_id, args.date, args.period)
    finally:
        client.close()
    for name, value in sorted(records.items()):
        if isinstance(value, DistributionTable):
            value = ' '.join('%s=%s' % row for row in value.to_rows())
        print('%s\t%s' % (name, value))
