import logging
import warnings

import simplejson
from sqlalchemy import (MetaData, Table, Column, types, create_engine, select,
                        func, exc)
from sqlalchemy.sql import and_
from sqlalchemy.dialects import mysql

from ..metrics import (GOAL_METRICS, IDGOAL_CART, NB_CONVERSIONS,
                       NB_VISITS_CONVERTED)
from ..model import DistributionTable
from ..ranges import default_columns


log = logging.getLogger(__name__)


# Catch truncated data warnings. These are likely to happen on blob types
# with a backend field that is not large enough, and they will break
# things horribly.
warnings.filterwarnings('error',
                        'Data truncated for column',
                        Warning,
                        'sqlalchemy.engine.default')


class JSONBlob(types.TypeDecorator):
    """
    Stores a JSON-serializable value (usually a distribution table) as an
    encoded blob.
    """
    impl = types.LargeBinary
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'mysql':
            return dialect.type_descriptor(mysql.LONGBLOB)  # pragma: nocover
        else:
            return dialect.type_descriptor(types.LargeBinary())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return simplejson.dumps(value).encode('utf-8')

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return simplejson.loads(value.decode('utf-8'), use_decimal=True)


class SQLStore(object):
    """
    Site catalog, conversion log and record archive backed by SQL tables.
    Implements the catalog, conversion row source and record store
    interfaces used by ``GoalsArchiver``.
    """
    def __init__(self, sqlalchemy_url):
        self.engine = create_engine(sqlalchemy_url, pool_recycle=3600)
        self.metadata = MetaData()

        self.sites_table = Table(
            'sites',
            self.metadata,
            Column('idsite', types.Integer, primary_key=True,
                   autoincrement=False),
            Column('name', types.String(90), nullable=False, default=''),
            Column('timezone', types.String(50), nullable=False,
                   default='UTC'),
            Column('ecommerce', types.Boolean, nullable=False, default=False),
            mysql_engine='InnoDB')

        self.rollup_members_table = Table(
            'rollup_members',
            self.metadata,
            Column('idsite', types.Integer, primary_key=True,
                   autoincrement=False),
            Column('member_idsite', types.Integer, primary_key=True,
                   autoincrement=False),
            mysql_engine='InnoDB')

        self.goals_table = Table(
            'goals',
            self.metadata,
            Column('idsite', types.Integer, primary_key=True,
                   autoincrement=False),
            Column('idgoal', types.Integer, primary_key=True,
                   autoincrement=False),
            Column('name', types.String(50), nullable=False, default=''),
            Column('deleted', types.Boolean, nullable=False, default=False),
            mysql_engine='InnoDB')

        self.log_conversion_table = Table(
            'log_conversion',
            self.metadata,
            Column('id', types.Integer, primary_key=True),
            Column('idsite', types.Integer, nullable=False),
            Column('idvisit', types.Integer, nullable=False),
            Column('idgoal', types.Integer, nullable=False),
            Column('server_time', types.Integer, nullable=False, index=True),
            Column('visitor_count_visits', types.Integer, nullable=False,
                   default=1),
            Column('visitor_seconds_since_first', types.Integer,
                   nullable=False, default=0),
            Column('revenue', types.Numeric(15, 2), nullable=False,
                   default=0),
            Column('revenue_subtotal', types.Numeric(15, 2), nullable=False,
                   default=0),
            Column('revenue_tax', types.Numeric(15, 2), nullable=False,
                   default=0),
            Column('revenue_shipping', types.Numeric(15, 2), nullable=False,
                   default=0),
            Column('revenue_discount', types.Numeric(15, 2), nullable=False,
                   default=0),
            Column('items', types.Integer, nullable=False, default=0),
            mysql_engine='InnoDB')

        self.archive_numeric_table = Table(
            'archive_numeric',
            self.metadata,
            Column('idsite', types.Integer, primary_key=True,
                   autoincrement=False),
            Column('period', types.String(10), primary_key=True),
            Column('date', types.String(10), primary_key=True),
            Column('name', types.String(255), primary_key=True),
            Column('value', types.Float, nullable=False, default=0),
            mysql_engine='InnoDB')

        self.archive_blob_table = Table(
            'archive_blob',
            self.metadata,
            Column('idsite', types.Integer, primary_key=True,
                   autoincrement=False),
            Column('period', types.String(10), primary_key=True),
            Column('date', types.String(10), primary_key=True),
            Column('name', types.String(255), primary_key=True),
            Column('value', JSONBlob, nullable=False),
            mysql_engine='InnoDB')

        self.metadata.create_all(self.engine)

    def criteria_from_dict(self, table, key_dict):
        criteria = []
        for col, val in key_dict.items():
            criteria.append(getattr(table.c, col) == val)
        if len(criteria) > 1:
            return and_(*criteria)
        else:
            return criteria[0]

    def put_kv(self, conn, table, key_dict, value_dict):
        whereclause = self.criteria_from_dict(table, key_dict)

        q = table.update().values(**value_dict).where(whereclause)
        r = conn.execute(q)
        if r.rowcount == 0:
            value_dict = dict(value_dict, **key_dict)
            conn.execute(table.insert().values(**value_dict))

    def get_kv(self, table, get_cols, key_dict):
        to_select = [getattr(table.c, col) for col in get_cols]
        whereclause = self.criteria_from_dict(table, key_dict)

        with self.engine.connect() as conn:
            r = conn.execute(select(*to_select).where(whereclause)).first()
        if r is None:
            raise KeyError(key_dict)
        return r

    def get_goal_ids(self, site_id):
        t = self.goals_table
        q = select(t.c.idgoal).\
            where(t.c.idsite == site_id).\
            where(t.c.deleted.is_(False)).\
            order_by(t.c.idgoal)
        with self.engine.connect() as conn:
            return [idgoal for (idgoal,) in conn.execute(q)]

    def uses_ecommerce(self, site_id):
        try:
            r = self.get_kv(self.sites_table, ['ecommerce'],
                            {'idsite': site_id})
        except KeyError:
            return False
        return bool(r[0])

    def get_timezone(self, site_id):
        try:
            r = self.get_kv(self.sites_table, ['timezone'],
                            {'idsite': site_id})
        except KeyError:
            return 'UTC'
        return r[0]

    def get_rollup_members(self, site_id):
        t = self.rollup_members_table
        q = select(t.c.member_idsite).\
            where(t.c.idsite == site_id).\
            order_by(t.c.member_idsite)
        with self.engine.connect() as conn:
            return [member for (member,) in conn.execute(q)]

    def period_criteria(self, site_ids, period):
        t = self.log_conversion_table
        return and_(t.c.idsite.in_(list(site_ids)),
                    t.c.server_time >= period.start,
                    t.c.server_time < period.end)

    def query_conversions(self, site_ids, period, columns=default_columns):
        """
        Return conversion rows for the given sites and period, grouped by
        goal and by the field of each requested ranged column, with every
        goal metric summed. Returns None if the query fails.

        A goal's distinct converted visits are counted once over the whole
        period and carried by the goal's first row, other rows of the same
        goal carry 0.
        """
        t = self.log_conversion_table
        group_cols = [t.c[column.field] for column in columns]
        criteria = self.period_criteria(site_ids, period)

        metric_cols = [func.count().label(NB_CONVERSIONS)]
        for metric in GOAL_METRICS:
            if metric not in (NB_CONVERSIONS, NB_VISITS_CONVERTED):
                metric_cols.append(
                    func.coalesce(func.sum(t.c[metric]), 0).label(metric))

        q = select(t.c.idgoal, *(group_cols + metric_cols)).\
            where(criteria).\
            group_by(t.c.idgoal, *group_cols).\
            order_by(t.c.idgoal, *group_cols)

        visits_q = select(t.c.idgoal, func.count(t.c.idvisit.distinct())).\
            where(criteria).\
            group_by(t.c.idgoal)

        try:
            with self.engine.connect() as conn:
                visits = dict(conn.execute(visits_q).all())
                rows = [dict(row._mapping) for row in conn.execute(q)]
        except exc.DBAPIError:
            log.exception('Conversion query failed for sites %r, %r.',
                          site_ids, period)
            return None

        for row in rows:
            row[NB_VISITS_CONVERTED] = visits.pop(row['idgoal'], 0)
        return rows

    def count_visits_converted(self, site_ids, period):
        """
        Count the distinct visits with a conversion other than an abandoned
        cart. Returns 0 if the query fails.
        """
        t = self.log_conversion_table
        q = select(func.count(t.c.idvisit.distinct())).\
            where(self.period_criteria(site_ids, period)).\
            where(t.c.idgoal != IDGOAL_CART)
        try:
            with self.engine.connect() as conn:
                return conn.execute(q).scalar() or 0
        except exc.DBAPIError:
            log.exception('Converted visit count failed for sites %r, %r.',
                          site_ids, period)
            return 0

    def put_records(self, site_id, period, records):
        """
        Write a record set, replacing any records previously archived under
        the same names for this site and period.
        """
        with self.engine.begin() as conn:
            for name, value in records.items():
                key = {'idsite': site_id,
                       'period': period.kind,
                       'date': period.label,
                       'name': name}
                if isinstance(value, dict):
                    table = self.archive_blob_table
                else:
                    table = self.archive_numeric_table
                self.put_kv(conn, table, key, {'value': value})
        log.debug('Stored %d records for site %s, %r.', len(records),
                  site_id, period)

    def get_record(self, site_id, period, name):
        """
        Read back an archived record. Blob records are returned as
        ``DistributionTable`` instances.

        :raises KeyError:
            If no such record was archived.
        """
        key = {'idsite': site_id,
               'period': period.kind,
               'date': period.label,
               'name': name}
        try:
            return self.get_kv(self.archive_numeric_table, ['value'], key)[0]
        except KeyError:
            pass
        value = self.get_kv(self.archive_blob_table, ['value'], key)[0]
        table = DistributionTable()
        table.update(value)
        return table
