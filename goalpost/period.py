"""
Reporting periods, bounded by local midnight in a site's timezone.
"""

import calendar
from datetime import datetime, time, timedelta

import pytz


DAY = 'day'
WEEK = 'week'
MONTH = 'month'
YEAR = 'year'

kinds = (DAY, WEEK, MONTH, YEAR)


def first_day(kind, day):
    "Return the first date of the period of the given kind containing day."
    if kind == DAY:
        return day
    elif kind == WEEK:
        return day - timedelta(days=day.weekday())
    elif kind == MONTH:
        return day.replace(day=1)
    elif kind == YEAR:
        return day.replace(month=1, day=1)
    raise ValueError('invalid period: %r' % kind)


def next_first_day(kind, day):
    "Return the first date of the period following the one starting on day."
    if kind == DAY:
        return day + timedelta(days=1)
    elif kind == WEEK:
        return day + timedelta(days=7)
    elif kind == MONTH:
        if day.month == 12:
            return day.replace(year=day.year + 1, month=1)
        return day.replace(month=day.month + 1)
    elif kind == YEAR:
        return day.replace(year=day.year + 1)
    raise ValueError('invalid period: %r' % kind)


class Period(object):
    """
    A day, week (starting Monday), month or year in a given timezone.
    ``start`` and ``end`` are UTC POSIX timestamps; ``end`` is exclusive.
    """
    def __init__(self, kind, day, tzname='UTC'):
        if kind not in kinds:
            raise ValueError('invalid period: %r' % kind)
        self.kind = kind
        self.tz = pytz.timezone(tzname)
        self.first_day = first_day(kind, day)
        self.start = self.local_midnight(self.first_day)
        self.end = self.local_midnight(next_first_day(kind, self.first_day))

    @classmethod
    def parse(cls, kind, s, tzname='UTC'):
        return cls(kind, datetime.strptime(s, '%Y-%m-%d').date(), tzname)

    def local_midnight(self, day):
        dt = self.tz.localize(datetime.combine(day, time()))
        return calendar.timegm(dt.astimezone(pytz.utc).timetuple())

    @property
    def label(self):
        return self.first_day.isoformat()

    def __contains__(self, timestamp):
        return self.start <= timestamp < self.end

    def __eq__(self, other):
        return (isinstance(other, Period) and
                (self.kind, self.start, self.end) ==
                (other.kind, other.start, other.end))

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash((self.kind, self.start, self.end))

    def __repr__(self):
        return '<Period %s %s %s>' % (self.kind, self.label, self.tz.zone)


def today(tzname='UTC'):
    "Return the current date in the given timezone."
    return datetime.now(pytz.timezone(tzname)).date()
