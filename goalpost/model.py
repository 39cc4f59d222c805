NUMERIC = 'numeric'
BLOB = 'blob'


class DistributionTable(dict):
    """
    A mapping of bucket label to a conversion count, for one goal and one
    dimension. Instances may be seeded with a sequence of labels, which are
    all given a count of zero, so that every bucket appears in the archived
    table in range order.
    """
    def __init__(self, labels=()):
        dict.__init__(self, ((label, 0) for label in labels))

    def increment(self, label, count=1):
        self[label] = self.get(label, 0) + count

    def add_table(self, other):
        """
        Add the counts of another table onto this one, label by label. Labels
        not yet present are appended.
        """
        for label, count in other.items():
            self.increment(label, count)

    def total(self):
        return sum(self.values())

    def to_rows(self):
        "Return a list of (label, count) pairs, in table order."
        return list(self.items())


class Record(object):
    """
    Describes a record that archiving a site may produce: its kind (numeric
    scalar or blob table) and its name.
    """
    def __init__(self, kind, name):
        assert kind in (NUMERIC, BLOB)
        self.kind = kind
        self.name = name

    @classmethod
    def numeric(cls, name):
        return cls(NUMERIC, name)

    @classmethod
    def blob(cls, name):
        return cls(BLOB, name)

    def __eq__(self, other):
        return (isinstance(other, Record) and
                (self.kind, self.name) == (other.kind, other.name))

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash((self.kind, self.name))

    def __repr__(self):
        return '<Record %s %s>' % (self.kind, self.name)

    def to_list(self):
        return [self.kind, self.name]
