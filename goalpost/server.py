import argparse
import logging
from threading import Thread, Event

import simplejson
import zmq

from .archiver import GoalsArchiver
from .cli import add_common_arguments, configure
from .persistence.sql import SQLStore

log = logging.getLogger(__name__)


ctx = zmq.Context.instance()
default_bind = 'tcp://127.0.0.1:5555'


def encode_default(obj):
    if hasattr(obj, 'to_list'):
        return obj.to_list()
    raise TypeError('%r is not JSON serializable' % (obj,))


def encode(msg):
    return simplejson.dumps(msg, default=encode_default).encode('utf-8')


def decode(raw):
    return simplejson.loads(raw.decode('utf-8'), use_decimal=True)


class Server(Thread):
    """
    Exposes the public methods of a backend object, usually a
    ``GoalsArchiver``, over a ZeroMQ REP socket. Requests are
    ``[method, args, kwargs]``; replies are ``['ok', result]`` or
    ``['error', [exception class name, message]]``.
    """
    def __init__(self, backend, bind=default_bind, poll_timeout=100):
        Thread.__init__(self)
        self.daemon = True
        self.backend = backend
        self.bind = bind
        self.poll_timeout = poll_timeout
        self.stopped = Event()

    def run(self):
        s = ctx.socket(zmq.REP)
        s.setsockopt(zmq.LINGER, 0)
        s.bind(self.bind)

        poller = zmq.Poller()
        poller.register(s, zmq.POLLIN)
        try:
            while not self.stopped.is_set():
                if dict(poller.poll(self.poll_timeout)).get(s) == zmq.POLLIN:
                    self.handle_zmq(s)
        finally:
            s.close()

    def kill(self):
        self.stopped.set()
        if self.is_alive():
            self.join()

    def handle_zmq(self, sock):
        try:
            req = decode(sock.recv())
            reply = encode(['ok', self.handle(req)])
        except Exception as e:
            log.exception('Error handling request.')
            reply = encode(['error', [e.__class__.__name__, str(e)]])
        sock.send(reply)

    def handle(self, req):
        log.info('Handling request: %r', req)
        method, args, kwargs = req
        if method.startswith('_'):
            raise AttributeError('private method: %s' % method)
        resp = getattr(self.backend, method)(*args, **kwargs)
        log.info('Returning response: %r', resp)
        return resp


def load_args_config(args):
    return dict(verbose=args.verbose,
                error_log_path=args.error_log_path,
                sqlalchemy_url=args.url,
                ecommerce_active=args.ecommerce,
                bind=args.bind)


def main(argv=None):
    p = argparse.ArgumentParser(
        description='Serve goal archiving requests over ZeroMQ.')
    add_common_arguments(p)
    p.add_argument('--bind', type=str,
                   default=default_bind,
                   help='ZeroMQ socket description to bind to')

    args = p.parse_args(argv)
    config = configure(args, load_args=load_args_config)

    if not config.get('sqlalchemy_url'):
        p.error('a SQL backend URL is required')

    store = SQLStore(config['sqlalchemy_url'])
    archiver = GoalsArchiver(store, store=store,
                             ecommerce_active=config.get('ecommerce_active',
                                                         True))

    server = Server(archiver, bind=config.get('bind', default_bind))
    log.info('Serving on %s', server.bind)
    try:
        server.run()
    except KeyboardInterrupt:
        log.info('Interrupted, shutting down.')
