import argparse
import logging
import logging.config
import sys

from .archiver import GoalsArchiver
from .period import DAY, kinds, today
from .persistence.sql import SQLStore


def logging_config(verbose=False, filename=None):
    handlers = {
        'console': {
            'class': 'logging.StreamHandler',
            'stream': sys.stderr,
            'formatter': 'generic',
            'level': logging.DEBUG if verbose else logging.WARN,
        },
        'null': {
            'class': 'logging.NullHandler',
        }
    }

    if filename:
        handlers['root_file'] = {
            'class': 'logging.FileHandler',
            'formatter': 'generic',
            'level': 'NOTSET',
            'filename': filename,
        }

    return {
        'version': 1,
        'formatters': {
            'generic': {
                'format':
                "%(asctime)s %(levelname)-5.5s [%(name)s] %(message)s"
            },
        },
        'handlers': handlers,
        'loggers': {
            'goalpost': {
                'propagate': True,
                'level': 'NOTSET',
                'handlers': list(handlers.keys()),
            },
        },
        'root': {
            'level': 'DEBUG',
            'handlers': ['null']
        }
    }


def load_python_config(namespace):
    mod_name, attr_name = namespace.rsplit('.', 1)
    __import__(mod_name)
    mod = sys.modules[mod_name]
    return dict(getattr(mod, attr_name))


def add_common_arguments(p):
    p.add_argument('-v', '--verbose', dest='verbose', action='store_true',
                   default=False, help='Print detailed output')
    p.add_argument('--log', dest='error_log_path', type=str,
                   help='Path to error/debug log')
    p.add_argument('-u', '--url', dest='url', type=str,
                   help='SQL backend URL')
    p.add_argument('--no-ecommerce', dest='ecommerce', action='store_false',
                   default=True,
                   help='Leave ecommerce goals out of the record schema')
    p.add_argument('--config', type=str,
                   help='Python namespace to use for configuration')


def load_args_config(args):
    return dict(verbose=args.verbose,
                error_log_path=args.error_log_path,
                sqlalchemy_url=args.url,
                ecommerce_active=args.ecommerce,
                site_id=args.site_id,
                date=args.date,
                period=args.period)


def configure(args, load_args=load_args_config):
    if args.config:
        config = load_python_config(args.config)
    else:
        config = load_args(args)

    logging.config.dictConfig(logging_config(config.pop('verbose', False),
                                             config.pop('error_log_path',
                                                        None)))
    return config


def main(argv=None):
    p = argparse.ArgumentParser(
        description='Archive goal conversion records for a site and period.')
    add_common_arguments(p)
    p.add_argument('-s', '--site', dest='site_id', type=int,
                   help='Site id to archive')
    p.add_argument('-d', '--date', dest='date', type=str,
                   help='Date within the period, as YYYY-MM-DD '
                   '(default: today in the site timezone)')
    p.add_argument('-p', '--period', dest='period', type=str, default=DAY,
                   choices=kinds, help='Period to archive')

    args = p.parse_args(argv)
    config = configure(args)

    if not config.get('sqlalchemy_url') or config.get('site_id') is None:
        p.error('a SQL backend URL and a site id are required')

    store = SQLStore(config['sqlalchemy_url'])
    archiver = GoalsArchiver(store, store=store,
                             ecommerce_active=config.get('ecommerce_active',
                                                         True))

    site_id = config['site_id']
    date = config.get('date') or \
        today(store.get_timezone(site_id)).isoformat()
    records = archiver.archive(site_id, date, config.get('period') or DAY)

    for name, value in records.items():
        if not isinstance(value, dict):
            print('%s\t%s' % (name, value))
