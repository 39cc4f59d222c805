"""
Range tables used to bucket conversions into the "visits until conversion"
and "days until conversion" distributions.

A range spec is a tuple of inclusive ``(lo, hi)`` pairs in ascending order.
The final entry may be a one-element ``(lo,)`` tuple, meaning "lo or
greater". Lookups take the first range that contains the value, so where the
last closed range and the open range share a bound, the closed range wins.
"""

SECONDS_PER_DAY = 86400


VISIT_COUNT_RANGES = (
    (1, 1),
    (2, 2),
    (3, 3),
    (4, 4),
    (5, 5),
    (6, 6),
    (7, 7),
    (8, 8),
    (9, 14),
    (15, 25),
    (26, 50),
    (51, 100),
    (100,),
)


DAYS_TO_CONV_RANGES = (
    (0, 0),
    (1, 1),
    (2, 2),
    (3, 3),
    (4, 4),
    (5, 5),
    (6, 6),
    (7, 7),
    (8, 14),
    (15, 30),
    (31, 60),
    (61, 120),
    (121, 364),
    (364,),
)


class InvalidRangeError(ValueError):
    pass


def label_for_range(r):
    """
    Build the bucket label for a single range.

    :param r:
        A ``(lo, hi)`` or ``(lo,)`` tuple.
    :returns:
        ``'lo'`` if both bounds are equal, ``'lo-hi'`` for other closed
        ranges, ``'lo+'`` for an open range.
    :rtype:
        string
    """
    if len(r) == 1:
        return '%d+' % r[0]
    lo, hi = r
    if lo == hi:
        return '%d' % lo
    return '%d-%d' % (lo, hi)


def seconds_to_days(seconds):
    "Floor a number of seconds to a whole number of days."
    return int(seconds) // SECONDS_PER_DAY


class RangeTable(object):
    """
    An immutable, validated range spec which maps numeric values onto bucket
    labels.
    """
    def __init__(self, ranges):
        ranges = tuple(tuple(r) for r in ranges)
        if not ranges:
            raise InvalidRangeError('range spec must not be empty')

        prev_lo = None
        for ii, r in enumerate(ranges):
            if len(r) not in (1, 2):
                raise InvalidRangeError('invalid range: %r' % (r,))
            if len(r) == 1 and ii != len(ranges) - 1:
                raise InvalidRangeError('only the last range may be open: %r'
                                        % (r,))
            if len(r) == 2 and r[0] > r[1]:
                raise InvalidRangeError('range bounds out of order: %r' %
                                        (r,))
            if prev_lo is not None and r[0] < prev_lo:
                raise InvalidRangeError('ranges must be ascending: %r' %
                                        (r,))
            prev_lo = r[0]

        self.ranges = ranges
        self.labels = tuple(label_for_range(r) for r in ranges)

    def __iter__(self):
        return iter(self.ranges)

    def __len__(self):
        return len(self.ranges)

    def __repr__(self):
        return '<RangeTable %s>' % ', '.join(self.labels)

    def bucket(self, value):
        """
        Return the label of the first range containing ``value``.

        :raises InvalidRangeError:
            If ``value`` falls outside every range.
        """
        for r, label in zip(self.ranges, self.labels):
            if len(r) == 1:
                if value >= r[0]:
                    return label
            elif r[0] <= value <= r[1]:
                return label
        raise InvalidRangeError('value %r is outside of %r' % (value, self))


visit_count_table = RangeTable(VISIT_COUNT_RANGES)
days_to_conv_table = RangeTable(DAYS_TO_CONV_RANGES)


class RangedColumn(object):
    """
    Ties a row field to the range table used to bucket it and to the record
    name its distribution tables are archived under. If ``convert`` is set,
    field values are passed through it before lookup.
    """
    def __init__(self, name, field, table, convert=None):
        self.name = name
        self.field = field
        self.table = table
        self.convert = convert

    def __repr__(self):
        return '<RangedColumn %s on %s>' % (self.name, self.field)

    @property
    def labels(self):
        return self.table.labels

    def bucket(self, value):
        if self.convert is not None:
            value = self.convert(value)
        return self.table.bucket(value)


VISITS_UNTIL_CONV = RangedColumn('visits_until_conv',
                                 'visitor_count_visits',
                                 visit_count_table)

DAYS_UNTIL_CONV = RangedColumn('days_until_conv',
                               'visitor_seconds_since_first',
                               days_to_conv_table,
                               convert=seconds_to_days)

default_columns = (VISITS_UNTIL_CONV, DAYS_UNTIL_CONV)
